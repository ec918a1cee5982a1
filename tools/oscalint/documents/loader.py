"""
Document loader

Parses OSCAL content in JSON, YAML or XML into a document view.
"""

import json
import logging
from typing import Any, Optional, Union

import yaml
from lxml import etree

from ..errors import DocumentParseError
from ..formats import ModelType, OscalFormat
from .base_view import DocumentView
from .json_view import JsonDocumentView
from .xml_view import XmlDocumentView

logger = logging.getLogger(__name__)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class OscalYamlLoader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as strings

    OSCAL dates are validated as text, so they must not become datetime objects.
    """


OscalYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def decode_content(content: Union[str, bytes]) -> str:
    """Text of ``content``, decoding bytes as UTF-8"""
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DocumentParseError(f"Invalid UTF-8: {e.reason} at byte {e.start}") from e


def parse_json(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise DocumentParseError(f"Invalid JSON: {e.msg}", line=e.lineno, column=e.colno) from e
    except RecursionError as e:
        raise DocumentParseError("Invalid JSON: document is nested too deeply") from e


def parse_yaml(content: str) -> Any:
    try:
        return yaml.load(content, Loader=OscalYamlLoader)
    except RecursionError as e:
        raise DocumentParseError("Invalid YAML: document is nested too deeply") from e
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        if mark is not None:
            raise DocumentParseError(f"Invalid YAML: {problem}", line=mark.line + 1, column=mark.column + 1) from e
        raise DocumentParseError(f"Invalid YAML: {problem}") from e


def parse_xml(content: Union[str, bytes]):
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        return etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        line, column = getattr(e, "position", (getattr(e, "lineno", None), None))
        raise DocumentParseError(f"Invalid XML: {e.msg}", line=line, column=column) from e


def load_document(content: Union[str, bytes], fmt: Union[str, OscalFormat],
                  source_name: Optional[str] = None) -> DocumentView:
    """Parse ``content`` declared as ``fmt`` into a document view"""
    fmt = OscalFormat.from_string(fmt)
    if fmt is not OscalFormat.XML:
        content = decode_content(content)

    if not content or not content.strip():
        raise DocumentParseError("Document is empty")

    if fmt is OscalFormat.XML:
        view: DocumentView = XmlDocumentView(parse_xml(content), source_name=source_name)
    else:
        data = parse_json(content) if fmt is OscalFormat.JSON else parse_yaml(content)
        if not isinstance(data, dict):
            raise DocumentParseError(
                f"{fmt.value.upper()} document root must be an object, got {type(data).__name__}"
            )
        view = JsonDocumentView(data, fmt=fmt, source_name=source_name)

    logger.debug(f"Loaded {fmt.value} document {source_name or '<content>'} with root '{view.root_name}'")
    return view


def detect_model_type(view: DocumentView) -> Optional[ModelType]:
    """OSCAL model type named by the document root, None when unrecognized"""
    model_type = view.model_type
    if model_type is None:
        logger.warning(f"No recognized OSCAL document type found in {view.source_name or '<content>'}")
    return model_type
