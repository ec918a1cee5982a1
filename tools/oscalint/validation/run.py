"""
Validation run

Orchestrates validation of a single document: selects the applicable rules,
evaluates them in registration order and partitions the diagnostics.
"""

import logging
from typing import Optional, Union

from ..documents.base_view import DocumentView
from ..documents.loader import detect_model_type, load_document
from ..errors import DocumentParseError
from ..formats import ModelType, OscalFormat
from ..rules.registry import RuleRegistry
from .diagnostics import ValidationResult, error_diagnostic, utc_timestamp
from .evaluator import CustomEvaluatorRegistry, RuleEvaluator

logger = logging.getLogger(__name__)


class ValidationRun:
    """Validates documents against the rules held by a registry"""

    def __init__(self, registry: RuleRegistry, evaluator: Optional[RuleEvaluator] = None):
        self.registry = registry
        self.evaluator = evaluator or RuleEvaluator()

    @classmethod
    def default(cls) -> "ValidationRun":
        """Run over the built-in rule catalog with the built-in custom evaluators"""
        from ..rules.builtin import register_builtin_evaluators

        custom_evaluators = CustomEvaluatorRegistry()
        register_builtin_evaluators(custom_evaluators)
        return cls(RuleRegistry.with_builtin_rules(), RuleEvaluator(custom_evaluators))

    def run(self, view: DocumentView, model_type: Union[str, ModelType],
            fmt: Optional[OscalFormat] = None) -> ValidationResult:
        model_type = ModelType.from_string(model_type)
        result = ValidationResult(
            model_type=model_type,
            format=fmt or view.format,
            timestamp=utc_timestamp(),
        )

        rules = self.registry.rules_for(model_type)
        for rule in rules:
            for diagnostic in self.evaluator.evaluate(rule, view):
                result.add(diagnostic)

        result.valid = not result.errors
        logger.info(
            f"Validated {view.source_name or model_type.value}: {len(rules)} rules, "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def validate_content(self, content: Union[str, bytes], fmt: Union[str, OscalFormat],
                         model_type: Union[str, ModelType, None] = None,
                         source_name: Optional[str] = None) -> ValidationResult:
        """Load and validate raw content; content problems never raise"""
        fmt = OscalFormat.from_string(fmt)
        timestamp = utc_timestamp()

        try:
            view = load_document(content, fmt, source_name=source_name)
        except DocumentParseError as e:
            logger.warning(f"Could not parse {source_name or 'document'}: {e}")
            return ValidationResult(
                valid=False,
                errors=[error_diagnostic(str(e), path="", line=e.line, column=e.column)],
                model_type=ModelType.from_string(model_type) if model_type else None,
                format=fmt,
                timestamp=timestamp,
            )

        if model_type is None:
            model_type = detect_model_type(view)
            if model_type is None:
                return ValidationResult(
                    valid=False,
                    errors=[error_diagnostic(
                        f"Unknown OSCAL document type: root element '{view.root_name}'", path="/"
                    )],
                    format=fmt,
                    timestamp=timestamp,
                )

        return self.run(view, model_type, fmt)
