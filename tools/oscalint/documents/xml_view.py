"""
Document view over OSCAL XML content

Field paths use the JSON vocabulary. Plural JSON group names fall back to the
singular XML element name (``controls`` to ``control``), and child lookups
fall back to attributes, which is where OSCAL XML keeps ``uuid`` and ``id``.
"""

import logging
import math
from typing import Any, List, Optional

from lxml import etree

from ..errors import MalformedRuleExpression
from ..formats import OscalFormat, QueryLanguage
from .base_view import OSCAL_NAMESPACE, DocumentView, split_field_path

logger = logging.getLogger(__name__)

XPATH_NAMESPACES = {"o": OSCAL_NAMESPACE}


def _local_name(element) -> str:
    return etree.QName(element).localname


def _singular(name: str) -> Optional[str]:
    if name.endswith("ies"):
        return name[:-3] + "y"
    if name.endswith("s") and len(name) > 1:
        return name[:-1]
    return None


def _leaf_value(node: Any) -> Any:
    """Text for leaf elements, the element itself for structured ones"""
    if not isinstance(node, etree._Element):
        return node
    has_children = any(isinstance(child.tag, str) for child in node)
    if has_children or (node.attrib and not (node.text or "").strip()):
        return node
    return (node.text or "").strip()


class XmlDocumentView(DocumentView):
    """View over an lxml element tree"""

    def __init__(self, root, source_name: Optional[str] = None):
        super().__init__(OscalFormat.XML, source_name)
        self.root = root

    @property
    def root_name(self) -> Optional[str]:
        return _local_name(self.root)

    def _child_elements(self, node, name: str) -> List[Any]:
        elements = [child for child in node if isinstance(child.tag, str)]
        if name == "*":
            return elements
        matches = [child for child in elements if _local_name(child) == name]
        if not matches:
            singular = _singular(name)
            if singular:
                matches = [child for child in elements if _local_name(child) == singular]
        return matches

    def resolve(self, field_path: str) -> List[Any]:
        segments = split_field_path(field_path)
        if not segments:
            return [self.root]

        if segments[0] in ("*", self.root_name):
            segments = segments[1:]
        current: List[Any] = [self.root]

        for segment in segments:
            found = []
            for node in current:
                if not isinstance(node, etree._Element):
                    continue
                if segment.startswith("@"):
                    attribute = node.get(segment[1:])
                    if attribute is not None:
                        found.append(attribute)
                    continue
                children = self._child_elements(node, segment)
                if children:
                    found.extend(children)
                elif segment != "*" and node.get(segment) is not None:
                    found.append(node.get(segment))
            current = found
            if not current:
                break

        return [_leaf_value(node) for node in current]

    def supports(self, language: QueryLanguage) -> bool:
        return QueryLanguage(language) is QueryLanguage.XPATH

    def query(self, expression: str, language: QueryLanguage = QueryLanguage.XPATH) -> List[Any]:
        if not self.supports(language):
            raise MalformedRuleExpression(expression, f"{QueryLanguage(language).value} queries are not supported on xml documents")

        try:
            result = self.root.xpath(expression, namespaces=XPATH_NAMESPACES)
        except etree.XPathError as e:
            raise MalformedRuleExpression(expression, str(e)) from e

        # XPath can return node-sets, booleans, numbers or strings; scalars
        # match when they are true in the XPath boolean() sense
        if isinstance(result, list):
            return result
        if isinstance(result, float) and math.isnan(result):
            return []
        return [result] if result else []
