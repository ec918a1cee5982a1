"""
Document views for oscalint

Views expose parsed JSON, YAML and XML OSCAL documents to the rule evaluator
through field paths and JSONPath/XPath queries.
"""

from .base_view import DocumentView, is_empty
from .json_view import JsonDocumentView
from .xml_view import XmlDocumentView
from .loader import load_document, detect_model_type
from .converter import ConversionResult, convert_content

__all__ = [
    'DocumentView',
    'JsonDocumentView',
    'XmlDocumentView',
    'ConversionResult',
    'convert_content',
    'detect_model_type',
    'is_empty',
    'load_document'
]
