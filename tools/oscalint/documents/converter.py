"""
Format converter for OSCAL documents

Converts between JSON and YAML. XML conversion needs the OSCAL metaschema
bindings and is reported as unsupported.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import yaml

from ..errors import ConversionError, DocumentParseError
from ..formats import OscalFormat
from .loader import decode_content, parse_json, parse_xml, parse_yaml

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    success: bool
    content: Optional[str]
    from_format: OscalFormat
    to_format: OscalFormat
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content,
            "fromFormat": self.from_format.value,
            "toFormat": self.to_format.value,
            "error": self.error,
        }


def _serialize(data: Any, fmt: OscalFormat) -> str:
    if fmt is OscalFormat.JSON:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def convert_document(content: Union[str, bytes], from_format: OscalFormat, to_format: OscalFormat) -> str:
    """Convert content, raising DocumentParseError or ConversionError on failure"""
    if from_format is OscalFormat.XML or to_format is OscalFormat.XML:
        if from_format is to_format:
            parse_xml(content)
            return decode_content(content)
        raise ConversionError(
            f"Conversion from {from_format.value} to {to_format.value} requires "
            "OSCAL metaschema bindings and is not supported"
        )

    content = decode_content(content)
    data = parse_json(content) if from_format is OscalFormat.JSON else parse_yaml(content)
    if not isinstance(data, dict):
        raise DocumentParseError(f"{from_format.value.upper()} document root must be an object")
    return _serialize(data, to_format)


def convert_content(content: Union[str, bytes], from_format: Union[str, OscalFormat],
                    to_format: Union[str, OscalFormat]) -> ConversionResult:
    """Convert content between formats, reporting failures in the result"""
    from_format = OscalFormat.from_string(from_format)
    to_format = OscalFormat.from_string(to_format)
    logger.info(f"Converting {from_format.value} to {to_format.value}")

    try:
        converted = convert_document(content, from_format, to_format)
    except (DocumentParseError, ConversionError) as e:
        logger.error(f"Conversion failed: {e}")
        return ConversionResult(False, None, from_format, to_format, f"Conversion failed: {e}")

    return ConversionResult(True, converted, from_format, to_format)
