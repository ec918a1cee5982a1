"""
oscalint - rule-based validation for OSCAL documents

Validates OSCAL catalogs, profiles, component definitions, system security
plans, assessment plans and results, and POA&Ms in JSON, YAML or XML against a
registry of built-in and user-defined rules.

Key features:
- Required-field, pattern, JSONPath, XPath and custom rules
- Custom rules loaded from JSON or YAML definitions
- Per-model rule applicability and rule statistics
- Batch validation and JSON/YAML conversion with per-file error isolation

Architecture:
    Content (JSON/YAML/XML) → Document view → Rule registry → Rule evaluator → Validation result
"""

__version__ = "1.0.0"
__author__ = "oscalint contributors"
__license__ = "Apache-2.0"
