"""
Document view over JSON and YAML OSCAL content
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional

from jsonpath_ng.ext import parse as parse_jsonpath

from ..errors import MalformedRuleExpression
from ..formats import ModelType, OscalFormat, QueryLanguage
from .base_view import DocumentView, split_field_path

logger = logging.getLogger(__name__)

MODEL_ROOTS = {model_type.value for model_type in ModelType}


@lru_cache(maxsize=256)
def _compile_jsonpath(expression: str):
    try:
        return parse_jsonpath(expression)
    except Exception as e:
        # jsonpath-ng raises lexer, parser and plain exceptions depending on the input
        raise MalformedRuleExpression(expression, str(e)) from e


def _children(node: Any, name: str) -> Iterator[Any]:
    if isinstance(node, list):
        for item in node:
            yield from _children(item, name)
    elif isinstance(node, dict):
        if name == "*":
            yield from node.values()
        elif name in node:
            yield node[name]


class JsonDocumentView(DocumentView):
    """View over a JSON or YAML document loaded into Python containers"""

    def __init__(self, data: Dict[str, Any], fmt: OscalFormat = OscalFormat.JSON,
                 source_name: Optional[str] = None):
        super().__init__(fmt, source_name)
        self.data = data

    @property
    def root_name(self) -> Optional[str]:
        for key in self.data:
            if key in MODEL_ROOTS:
                return key
        if len(self.data) == 1:
            return next(iter(self.data))
        return None

    def resolve(self, field_path: str) -> List[Any]:
        segments = split_field_path(field_path)
        if not segments:
            return [self.data]

        current: List[Any] = [self.data]
        first = segments[0].lstrip("@")
        if first != "*" and first not in self.data and self.root_name:
            current = [self.data[self.root_name]]

        for segment in segments:
            name = segment[1:] if segment.startswith("@") else segment
            current = [child for node in current for child in _children(node, name)]
            if not current:
                break

        return current

    def supports(self, language: QueryLanguage) -> bool:
        return QueryLanguage(language) is QueryLanguage.JSONPATH

    def query(self, expression: str, language: QueryLanguage = QueryLanguage.JSONPATH) -> List[Any]:
        if not self.supports(language):
            raise MalformedRuleExpression(expression, f"{QueryLanguage(language).value} queries are not supported on {self.format.value} documents")

        compiled = _compile_jsonpath(expression)
        try:
            return [match.value for match in compiled.find(self.data)]
        except Exception as e:
            raise MalformedRuleExpression(expression, str(e)) from e
