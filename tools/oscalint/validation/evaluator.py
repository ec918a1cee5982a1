"""
Rule evaluator

Applies one rule to a document view and yields diagnostics. Dispatch is a
lookup table keyed by rule type; every RuleType member has an entry.
"""

import logging
import re
import threading
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional

from ..documents.base_view import DocumentView, is_empty
from ..errors import MalformedRuleExpression, UnevaluableCustomRule
from ..formats import QueryLanguage
from ..rules.model import Rule, RuleType
from .diagnostics import Diagnostic, error_diagnostic

logger = logging.getLogger(__name__)

CustomEvaluator = Callable[[DocumentView], Iterable[Diagnostic]]


@lru_cache(maxsize=512)
def compile_pattern(expression: str):
    try:
        return re.compile(expression)
    except re.error as e:
        raise MalformedRuleExpression(expression, str(e)) from e


class CustomEvaluatorRegistry:
    """Lookup table from rule id to the function that evaluates it"""

    def __init__(self):
        self._evaluators: Dict[str, CustomEvaluator] = {}
        self._lock = threading.Lock()

    def register(self, rule_id: str, evaluator: CustomEvaluator) -> None:
        with self._lock:
            self._evaluators[rule_id] = evaluator
        logger.debug(f"Registered custom evaluator for {rule_id}")

    def unregister(self, rule_id: str) -> None:
        with self._lock:
            self._evaluators.pop(rule_id, None)

    def evaluator(self, rule_id: str) -> Callable[[CustomEvaluator], CustomEvaluator]:
        """Decorator form of ``register``"""
        def decorator(fn: CustomEvaluator) -> CustomEvaluator:
            self.register(rule_id, fn)
            return fn
        return decorator

    def get(self, rule_id: str) -> Optional[CustomEvaluator]:
        return self._evaluators.get(rule_id)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._evaluators

    def __len__(self) -> int:
        return len(self._evaluators)


class RuleEvaluator:
    """Executes a rule's evaluation strategy against a document view"""

    def __init__(self, custom_evaluators: Optional[CustomEvaluatorRegistry] = None):
        self.custom_evaluators = custom_evaluators if custom_evaluators is not None else CustomEvaluatorRegistry()
        self._strategies: Dict[RuleType, Callable[[Rule, DocumentView], List[Diagnostic]]] = {
            RuleType.REQUIRED_FIELD: self._evaluate_required_field,
            RuleType.PATTERN_MATCH: self._evaluate_pattern_match,
            RuleType.JSON_PATH: self._evaluate_jsonpath,
            RuleType.XPATH: self._evaluate_xpath,
            RuleType.CUSTOM: self._evaluate_custom,
        }

    def evaluate(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        """Diagnostics for ``rule`` over ``view``; never raises for rule problems"""
        strategy = self._strategies[rule.rule_type]
        try:
            return strategy(rule, view)
        except MalformedRuleExpression as e:
            logger.warning(f"Rule {rule.id} has a malformed expression: {e.reason}")
            return [error_diagnostic(f"Rule '{rule.id}' is malformed: {e}", path="", rule_id=rule.id)]
        except UnevaluableCustomRule as e:
            logger.error(str(e))
            return [error_diagnostic(
                f"Rule '{rule.id}' could not be evaluated: no evaluator is registered for it",
                path=rule.field_path or "",
                rule_id=rule.id,
            )]

    def _diagnostic(self, rule: Rule, message: str, path: Optional[str]) -> Diagnostic:
        return Diagnostic(message=message, severity=rule.severity, path=path, rule_id=rule.id)

    def _evaluate_required_field(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        if is_empty(view.get(rule.field_path)):
            return [self._diagnostic(
                rule, f"{rule.name}: required field '{rule.field_path}' is missing or empty", rule.field_path
            )]
        return []

    def _evaluate_pattern_match(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        pattern = compile_pattern(rule.rule_expression or "")
        value = view.get(rule.field_path)
        # absence belongs to required-field rules
        if value is None:
            return []

        if not isinstance(value, (str, int, float)):
            return [self._diagnostic(
                rule, f"{rule.name}: value at '{rule.field_path}' is not a scalar and cannot be pattern-checked",
                rule.field_path
            )]

        text = str(value)
        if pattern.search(text):
            return []

        message = f"{rule.name}: value '{text}' at '{rule.field_path}' does not match pattern '{rule.rule_expression}'"
        if rule.constraint_details:
            message += f" ({rule.constraint_details})"
        return [self._diagnostic(rule, message, rule.field_path)]

    def _evaluate_query(self, rule: Rule, view: DocumentView, language: QueryLanguage) -> List[Diagnostic]:
        if not view.supports(language):
            logger.debug(f"Skipping {language.value} rule {rule.id} for {view.format.value} document")
            return []

        matches = view.query(rule.rule_expression or "", language)
        if matches:
            return []

        message = f"{rule.name}: query '{rule.rule_expression}' matched nothing"
        if rule.constraint_details:
            message += f" ({rule.constraint_details})"
        return [self._diagnostic(rule, message, rule.field_path or rule.rule_expression)]

    def _evaluate_jsonpath(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        return self._evaluate_query(rule, view, QueryLanguage.JSONPATH)

    def _evaluate_xpath(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        return self._evaluate_query(rule, view, QueryLanguage.XPATH)

    def _evaluate_custom(self, rule: Rule, view: DocumentView) -> List[Diagnostic]:
        evaluator = self.custom_evaluators.get(rule.id)
        if evaluator is None:
            raise UnevaluableCustomRule(rule.id)

        try:
            diagnostics = list(evaluator(view) or [])
        except MalformedRuleExpression:
            raise
        except Exception as e:
            logger.exception(f"Custom evaluator for {rule.id} failed: {e}")
            return [error_diagnostic(
                f"Rule '{rule.id}' could not be evaluated: {e}", path=rule.field_path or "", rule_id=rule.id
            )]

        return [d if d.rule_id else Diagnostic(d.message, d.severity, d.path, d.line, d.column, rule.id)
                for d in diagnostics]
