"""
Validation rule model

Rules are immutable records. Administrative edits replace the whole record
in the registry rather than mutating fields in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..formats import ModelType


class RuleType(str, Enum):
    """Evaluation strategy of a rule"""

    REQUIRED_FIELD = "required-field"
    PATTERN_MATCH = "pattern-match"
    JSON_PATH = "jsonpath"
    XPATH = "xpath"
    CUSTOM = "custom"

    @classmethod
    def from_string(cls, value: Union[str, "RuleType"]) -> "RuleType":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for rule_type in cls:
            if rule_type.value == normalized:
                return rule_type
        raise ValueError(f"Unknown validation rule type: {value}")


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_string(cls, value: Union[str, "Severity"]) -> "Severity":
        if isinstance(value, cls):
            return value
        for severity in cls:
            if severity.value == str(value).strip().lower():
                return severity
        raise ValueError(f"Unknown validation rule severity: {value}")


def _model_type_tuple(model_types: Iterable[Union[str, ModelType]]) -> Tuple[ModelType, ...]:
    ordered: List[ModelType] = []
    for value in model_types:
        model_type = ModelType.from_string(value)
        if model_type not in ordered:
            ordered.append(model_type)
    return tuple(ordered)


@dataclass(frozen=True)
class Rule:
    """A named, severity-tagged predicate over an OSCAL document

    An empty ``applicable_model_types`` means the rule applies to every
    model type.
    """

    id: str
    name: str
    description: str
    rule_type: RuleType
    severity: Severity
    applicable_model_types: Tuple[ModelType, ...] = ()
    built_in: bool = True
    category: Optional[str] = None
    field_path: Optional[str] = None
    constraint_details: Optional[str] = None
    rule_expression: Optional[str] = None

    def __post_init__(self):
        # frozen, so normalization goes through object.__setattr__
        object.__setattr__(self, "rule_type", RuleType.from_string(self.rule_type))
        object.__setattr__(self, "severity", Severity.from_string(self.severity))
        object.__setattr__(
            self, "applicable_model_types", _model_type_tuple(self.applicable_model_types)
        )

    @property
    def is_universal(self) -> bool:
        return not self.applicable_model_types

    def is_applicable_to(self, model_type: Union[str, ModelType]) -> bool:
        return self.is_universal or ModelType.from_string(model_type) in self.applicable_model_types

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "ruleType": self.rule_type.value,
            "severity": self.severity.value,
            "applicableModelTypes": [m.value for m in self.applicable_model_types],
            "builtIn": self.built_in,
            "category": self.category,
            "fieldPath": self.field_path,
            "constraintDetails": self.constraint_details,
            "ruleExpression": self.rule_expression,
        }


@dataclass
class RuleCategory:
    """Named grouping of rules

    ``rule_count`` tracks additions made through ``add_rule`` but may also be
    assigned directly, in which case it no longer mirrors ``len(rules)``.
    """

    id: str
    name: str
    description: str = ""
    rules: List[Rule] = field(default_factory=list)
    rule_count: Optional[int] = None

    def __post_init__(self):
        if self.rule_count is None:
            self.rule_count = len(self.rules)

    def add_rule(self, rule: Rule) -> None:
        self.rules.append(rule)
        self.rule_count += 1

    def set_rules(self, rules: Iterable[Rule]) -> None:
        self.rules = list(rules)
        self.rule_count = len(self.rules)

    def copy_empty(self) -> "RuleCategory":
        return RuleCategory(self.id, self.name, self.description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rules": [rule.to_dict() for rule in self.rules],
            "ruleCount": self.rule_count,
        }
