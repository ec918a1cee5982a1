"""
Validation components for oscalint

Rule evaluation, validation runs over single documents and result reporting.
"""

from .diagnostics import Diagnostic, ValidationResult
from .evaluator import CustomEvaluatorRegistry, RuleEvaluator
from .run import ValidationRun
from .validation_reporter import ValidationReporter

__all__ = [
    'Diagnostic',
    'ValidationResult',
    'CustomEvaluatorRegistry',
    'RuleEvaluator',
    'ValidationRun',
    'ValidationReporter'
]
