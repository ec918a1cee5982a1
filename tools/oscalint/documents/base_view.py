"""
Base document view for oscalint

A document view exposes a parsed OSCAL document to the rule evaluator through
field paths and query expressions, independent of the source format.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..formats import ModelType, OscalFormat, QueryLanguage

OSCAL_NAMESPACE = "http://csrc.nist.gov/ns/oscal/1.0"


def split_field_path(field_path: str) -> List[str]:
    """Split ``/a/b/@c`` into ``['a', 'b', '@c']``"""
    return [segment for segment in (field_path or "").strip().split("/") if segment]


def is_empty(value: Any) -> bool:
    """True for absent, blank-string and empty-container values"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


class DocumentView(ABC):
    """Read-only view over a parsed OSCAL document

    Field paths are ``/``-separated names where ``*`` matches any child and
    ``@name`` names an attribute. A path whose first segment is not a child of
    the document root is resolved inside the root model element, so
    ``/metadata/title`` works for every model type.
    """

    def __init__(self, fmt: OscalFormat, source_name: Optional[str] = None):
        self.format = fmt
        self.source_name = source_name

    @property
    @abstractmethod
    def root_name(self) -> Optional[str]:
        """Name of the root model element, e.g. ``catalog``"""

    @property
    def model_type(self) -> Optional[ModelType]:
        try:
            return ModelType.from_string(self.root_name) if self.root_name else None
        except ValueError:
            return None

    @abstractmethod
    def resolve(self, field_path: str) -> List[Any]:
        """All values found at ``field_path``, in document order"""

    def get(self, field_path: str) -> Optional[Any]:
        values = self.resolve(field_path)
        return values[0] if values else None

    @abstractmethod
    def supports(self, language: QueryLanguage) -> bool:
        """Whether ``query`` accepts expressions in ``language``"""

    @abstractmethod
    def query(self, expression: str, language: QueryLanguage) -> List[Any]:
        """Run a query expression, raising MalformedRuleExpression when it is invalid"""
