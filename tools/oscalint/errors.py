"""
Error taxonomy for oscalint

Only InvalidRuleDefinition reaches callers of the rule registry. The remaining
errors are raised internally and converted into diagnostics or per-file
failure records before they leave the engine.
"""

from typing import List, Optional


class OscalintError(Exception):
    """Base class for all oscalint errors"""


class InvalidRuleDefinition(OscalintError):
    """Custom rule submission is malformed and was not registered"""

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or []
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class MalformedRuleExpression(OscalintError):
    """Rule expression failed to compile or execute"""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Malformed rule expression '{expression}': {reason}")


class UnevaluableCustomRule(OscalintError):
    """No pluggable evaluator is registered for a custom rule"""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"No evaluator registered for custom rule '{rule_id}'")


class DocumentParseError(OscalintError):
    """Document content could not be parsed in its declared format"""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column
        super().__init__(message)


class ConversionError(OscalintError):
    """Document could not be converted between formats"""
