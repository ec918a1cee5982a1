"""
Per-file batch operations

Builds the validate and convert operations a batch request asks for.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..documents.converter import convert_content
from ..formats import ModelType, OscalFormat
from .runner import FileContent, FileOutcome

logger = logging.getLogger(__name__)


class BatchOperationType(str, Enum):
    VALIDATE = "validate"
    CONVERT = "convert"

    @classmethod
    def from_string(cls, value: Union[str, "BatchOperationType"]) -> "BatchOperationType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown batch operation type: {value}") from None


@dataclass
class BatchOperationRequest:
    operation_type: BatchOperationType
    files: List[FileContent] = field(default_factory=list)
    model_type: Optional[ModelType] = None
    from_format: Optional[OscalFormat] = None
    to_format: Optional[OscalFormat] = None
    operation_id: Optional[str] = None

    def __post_init__(self):
        self.operation_type = BatchOperationType.from_string(self.operation_type)
        if self.model_type is not None:
            self.model_type = ModelType.from_string(self.model_type)
        if self.from_format is not None:
            self.from_format = OscalFormat.from_string(self.from_format)
        if self.to_format is not None:
            self.to_format = OscalFormat.from_string(self.to_format)
        if self.operation_id is None:
            self.operation_id = str(uuid.uuid4())

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "BatchOperationRequest":
        return cls(
            operation_type=payload["operationType"],
            files=[FileContent.from_dict(item) for item in payload.get("files", [])],
            model_type=payload.get("modelType"),
            from_format=payload.get("fromFormat"),
            to_format=payload.get("toFormat"),
            operation_id=payload.get("operationId"),
        )


def validate_operation(validation_run, model_type: Optional[ModelType] = None) -> Callable[[FileContent], FileOutcome]:
    """Validate each file; a file succeeds when its result is valid"""
    def operation(file: FileContent) -> FileOutcome:
        result = validation_run.validate_content(
            file.content, file.format, model_type=model_type, source_name=file.filename
        )
        error = None if result.valid else (result.errors[0].message if result.errors else "Validation failed")
        return FileOutcome(success=result.valid, result=result, error=error)
    return operation


def convert_operation(to_format: OscalFormat,
                      from_format: Optional[OscalFormat] = None) -> Callable[[FileContent], FileOutcome]:
    """Convert each file to ``to_format``; the source format defaults to the file's own"""
    def operation(file: FileContent) -> FileOutcome:
        result = convert_content(file.content, from_format or file.format, to_format)
        return FileOutcome(success=result.success, result=result, error=result.error)
    return operation


def build_operation(request: BatchOperationRequest, validation_run=None) -> Callable[[FileContent], FileOutcome]:
    logger.debug(f"Building {request.operation_type.value} operation for {len(request.files)} files")
    if request.operation_type is BatchOperationType.VALIDATE:
        if validation_run is None:
            from ..validation.run import ValidationRun

            validation_run = ValidationRun.default()
        return validate_operation(validation_run, request.model_type)

    if request.to_format is None:
        raise ValueError("Convert operations require a target format")
    return convert_operation(request.to_format, request.from_format)
