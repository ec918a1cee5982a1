"""
Rule registry

Holds built-in and custom rules in registration order, answers which rules
apply to a model type, and computes aggregate statistics.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..errors import InvalidRuleDefinition
from ..formats import ModelType
from .custom import CustomRuleRequest
from .model import Rule, RuleCategory

logger = logging.getLogger(__name__)


@dataclass
class ValidationRulesResponse:
    """Rules, categories and statistics over them"""

    rules: List[Rule] = field(default_factory=list)
    categories: List[RuleCategory] = field(default_factory=list)
    total_rules: int = 0
    built_in_rules: int = 0
    custom_rules: int = 0
    rules_by_model_type: Dict[str, int] = field(default_factory=dict)
    rules_by_category: Dict[str, int] = field(default_factory=dict)

    def calculate_stats(self) -> None:
        """Recompute counters from ``rules``

        Universal rules list no model types and so land in no model-type
        bucket; rules without a category land in no category bucket.
        """
        self.total_rules = len(self.rules)
        self.built_in_rules = sum(1 for rule in self.rules if rule.built_in)
        self.custom_rules = self.total_rules - self.built_in_rules

        self.rules_by_model_type.clear()
        for rule in self.rules:
            for model_type in rule.applicable_model_types:
                key = model_type.value
                self.rules_by_model_type[key] = self.rules_by_model_type.get(key, 0) + 1

        self.rules_by_category.clear()
        for rule in self.rules:
            if rule.category:
                self.rules_by_category[rule.category] = self.rules_by_category.get(rule.category, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRules": self.total_rules,
            "builtInRules": self.built_in_rules,
            "customRules": self.custom_rules,
            "rulesByModelType": dict(self.rules_by_model_type),
            "rulesByCategory": dict(self.rules_by_category),
            "categories": [category.to_dict() for category in self.categories],
            "rules": [rule.to_dict() for rule in self.rules],
        }


class RuleRegistry:
    """Authoritative set of rules and categories

    Mutations are serialized under a lock. Readers take a snapshot tuple of
    the rules so that validation runs never observe a half-applied edit.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._rules: "OrderedDict[str, Rule]" = OrderedDict()
        self._categories: "OrderedDict[str, RuleCategory]" = OrderedDict()
        self._disabled: Set[str] = set()

    @classmethod
    def with_builtin_rules(cls) -> "RuleRegistry":
        """Create a registry preloaded with the built-in OSCAL rule catalog"""
        from .builtin import load_builtin_rules

        registry = cls()
        load_builtin_rules(registry)
        logger.info(
            f"Loaded {len(registry)} built-in validation rules in "
            f"{len(registry.categories())} categories"
        )
        return registry

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    # -- categories --

    def add_category(self, category_id: str, name: str, description: str = "") -> RuleCategory:
        with self._lock:
            if category_id not in self._categories:
                self._categories[category_id] = RuleCategory(category_id, name, description)
            return self._categories[category_id]

    def category(self, category_id: str) -> Optional[RuleCategory]:
        return self._categories.get(category_id)

    def categories(self) -> List[RuleCategory]:
        with self._lock:
            return list(self._categories.values())

    # -- registration --

    def register(self, rule: Rule) -> Rule:
        """Add a rule, appending it to its category when the category is declared"""
        with self._lock:
            if rule.id in self._rules:
                raise InvalidRuleDefinition(f"Rule ID already exists: {rule.id}")
            self._rules[rule.id] = rule
            self._attach_to_category(rule)
        logger.debug(f"Registered rule {rule.id} ({rule.rule_type.value})")
        return rule

    def register_all(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.register(rule)

    def register_custom(self, request: CustomRuleRequest) -> Rule:
        """Register a user-submitted rule

        Disabled requests are stored but excluded from ``rules_for`` until
        enabled.
        """
        rule = request.to_rule()
        with self._lock:
            self.register(rule)
            if not request.enabled:
                self._disabled.add(rule.id)
        logger.info(f"Created custom validation rule: {rule.id} (enabled: {request.enabled})")
        return rule

    def update_custom(self, rule_id: str, request: CustomRuleRequest) -> Rule:
        """Replace a custom rule record, possibly under a new id"""
        rule = request.to_rule()
        with self._lock:
            existing = self._require_custom(rule_id)
            if rule.id != rule_id and rule.id in self._rules:
                raise InvalidRuleDefinition(f"Rule ID already exists: {rule.id}")

            self._detach_from_category(existing)
            self._disabled.discard(rule_id)

            # Keep the original registration slot so ordering stays stable
            items = [(rule.id, rule) if key == rule_id else (key, value)
                     for key, value in self._rules.items()]
            self._rules = OrderedDict(items)
            self._attach_to_category(rule)
            if not request.enabled:
                self._disabled.add(rule.id)
        logger.info(f"Updated custom validation rule: {rule.id}")
        return rule

    def remove(self, rule_id: str) -> Rule:
        """Delete a custom rule; built-in rules cannot be removed"""
        with self._lock:
            rule = self._require_custom(rule_id)
            del self._rules[rule_id]
            self._disabled.discard(rule_id)
            self._detach_from_category(rule)
        logger.info(f"Deleted custom validation rule: {rule_id}")
        return rule

    def set_enabled(self, rule_id: str, enabled: bool) -> Rule:
        with self._lock:
            rule = self._require_custom(rule_id)
            if enabled:
                self._disabled.discard(rule_id)
            else:
                self._disabled.add(rule_id)
        logger.info(f"Custom validation rule {rule_id} enabled: {enabled}")
        return rule

    def toggle_enabled(self, rule_id: str) -> bool:
        """Flip the enabled flag of a custom rule and return the new value"""
        with self._lock:
            enabled = not self.is_enabled(rule_id)
            self.set_enabled(rule_id, enabled)
        return enabled

    # -- queries --

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def is_enabled(self, rule_id: str) -> bool:
        return rule_id in self._rules and rule_id not in self._disabled

    def snapshot(self) -> Tuple[Rule, ...]:
        with self._lock:
            return tuple(self._rules.values())

    def rules(self) -> List[Rule]:
        return list(self.snapshot())

    def rules_for(self, model_type: Union[str, ModelType]) -> List[Rule]:
        """Enabled rules applicable to ``model_type``, in registration order"""
        model_type = ModelType.from_string(model_type)
        with self._lock:
            disabled = set(self._disabled)
            rules = tuple(self._rules.values())
        return [
            rule for rule in rules
            if rule.id not in disabled and rule.is_applicable_to(model_type)
        ]

    def rules_by_category(self, category: str) -> List[Rule]:
        return [rule for rule in self.snapshot() if rule.category == category]

    def custom_rules(self) -> List[Rule]:
        return [rule for rule in self.snapshot() if not rule.built_in]

    def enabled_custom_rules(self) -> List[Rule]:
        return [rule for rule in self.custom_rules() if self.is_enabled(rule.id)]

    def response(self) -> ValidationRulesResponse:
        """All rules (disabled custom rules included) with statistics"""
        with self._lock:
            response = ValidationRulesResponse(
                rules=list(self._rules.values()),
                categories=list(self._categories.values()),
            )
        response.calculate_stats()
        return response

    def response_for(self, model_type: Union[str, ModelType]) -> ValidationRulesResponse:
        """Rules applicable to ``model_type`` grouped into fresh category copies"""
        rules = self.rules_for(model_type)
        filtered: "OrderedDict[str, RuleCategory]" = OrderedDict()
        for rule in rules:
            original = self._categories.get(rule.category) if rule.category else None
            if original is None:
                continue
            if rule.category not in filtered:
                filtered[rule.category] = original.copy_empty()
            filtered[rule.category].add_rule(rule)

        response = ValidationRulesResponse(rules=rules, categories=list(filtered.values()))
        response.calculate_stats()
        return response

    # -- internals --

    def _require_custom(self, rule_id: str) -> Rule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise KeyError(f"Custom rule not found: {rule_id}")
        if rule.built_in:
            raise InvalidRuleDefinition(f"Built-in rule {rule_id} cannot be modified")
        return rule

    def _attach_to_category(self, rule: Rule) -> None:
        if rule.category and rule.category in self._categories:
            self._categories[rule.category].add_rule(rule)

    def _detach_from_category(self, rule: Rule) -> None:
        category = self._categories.get(rule.category) if rule.category else None
        if category is None or rule not in category.rules:
            return
        category.rules.remove(rule)
        category.rule_count -= 1
