"""
OSCAL model types, serialization formats and query languages
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ModelType(str, Enum):
    """OSCAL document kinds, valued by their root element name"""

    CATALOG = "catalog"
    PROFILE = "profile"
    COMPONENT_DEFINITION = "component-definition"
    SYSTEM_SECURITY_PLAN = "system-security-plan"
    ASSESSMENT_PLAN = "assessment-plan"
    ASSESSMENT_RESULTS = "assessment-results"
    PLAN_OF_ACTION_AND_MILESTONES = "plan-of-action-and-milestones"

    @classmethod
    def from_string(cls, value: Union[str, "ModelType"]) -> "ModelType":
        if isinstance(value, cls):
            return value
        for model_type in cls:
            if model_type.value == str(value).strip().lower():
                return model_type
        raise ValueError(f"Unknown OSCAL model type: {value}")


class OscalFormat(str, Enum):
    """Serialization formats an OSCAL document can arrive in"""

    JSON = "json"
    XML = "xml"
    YAML = "yaml"

    @classmethod
    def from_string(cls, value: Union[str, "OscalFormat"]) -> "OscalFormat":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == "yml":
            normalized = "yaml"
        for fmt in cls:
            if fmt.value == normalized:
                return fmt
        raise ValueError(f"Unknown OSCAL format: {value}")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["OscalFormat"]:
        """Guess format from file suffix, None when the suffix is not recognized"""
        suffix = Path(path).suffix.lower().lstrip(".")
        try:
            return cls.from_string(suffix)
        except ValueError:
            return None

    @property
    def extension(self) -> str:
        return f".{self.value}"


class QueryLanguage(str, Enum):
    JSONPATH = "jsonpath"
    XPATH = "xpath"
