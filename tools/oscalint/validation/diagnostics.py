"""
Diagnostics and validation results
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from ..formats import ModelType, OscalFormat
from ..rules.model import Severity


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Diagnostic:
    """A single validation finding"""

    message: str
    severity: Severity = Severity.ERROR
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    rule_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "severity", Severity.from_string(self.severity))

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "severity": self.severity.value,
            "path": self.path,
            "ruleId": self.rule_id,
        }


@dataclass
class ValidationResult:
    """Outcome of validating one document

    ``valid`` is set by whoever builds the result; a validation run sets it
    to ``not errors`` but callers may still change it afterwards.
    """

    valid: bool = False
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)
    model_type: Optional[ModelType] = None
    format: Optional[OscalFormat] = None
    timestamp: str = field(default_factory=utc_timestamp)

    def add_error(self, diagnostic: Diagnostic) -> None:
        self.errors.append(diagnostic)

    def add_warning(self, diagnostic: Diagnostic) -> None:
        self.warnings.append(diagnostic)

    def add(self, diagnostic: Diagnostic) -> None:
        """File a diagnostic by severity; info findings count as warnings"""
        if diagnostic.is_error:
            self.add_error(diagnostic)
        else:
            self.add_warning(diagnostic)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
            "modelType": self.model_type.value if self.model_type else None,
            "format": self.format.value if self.format else None,
            "timestamp": self.timestamp,
        }


def error_diagnostic(message: str, path: Optional[str] = None,
                     rule_id: Optional[str] = None, **location: Union[int, None]) -> Diagnostic:
    return Diagnostic(message=message, severity=Severity.ERROR, path=path, rule_id=rule_id, **location)
