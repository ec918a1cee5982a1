"""
Rule definitions for oscalint

Rule model, custom-rule requests and the rule registry. The built-in rule
catalog lives in ``oscalint.rules.builtin``.
"""

from .model import Rule, RuleCategory, RuleType, Severity
from .custom import CustomRuleRequest, load_custom_rules
from .registry import RuleRegistry, ValidationRulesResponse

__all__ = [
    'Rule',
    'RuleCategory',
    'RuleType',
    'Severity',
    'CustomRuleRequest',
    'load_custom_rules',
    'RuleRegistry',
    'ValidationRulesResponse'
]
