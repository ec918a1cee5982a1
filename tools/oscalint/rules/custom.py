"""
Custom rule requests

User-submitted rule definitions are checked against a JSON schema before
they are turned into Rule records.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft7Validator

from ..errors import InvalidRuleDefinition
from ..formats import ModelType
from .model import Rule, RuleType, Severity

logger = logging.getLogger(__name__)

CUSTOM_RULE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["ruleId", "name", "ruleType", "severity", "enabled"],
    "properties": {
        "ruleId": {"type": "string", "minLength": 1, "pattern": r"\S"},
        "name": {"type": "string", "minLength": 1, "pattern": r"\S"},
        "description": {"type": ["string", "null"]},
        "ruleType": {"type": "string", "minLength": 1},
        "severity": {"type": "string", "minLength": 1},
        "category": {"type": ["string", "null"]},
        "fieldPath": {"type": ["string", "null"]},
        "ruleExpression": {"type": ["string", "null"]},
        "constraintDetails": {"type": ["string", "null"]},
        "applicableModelTypes": {
            "type": ["array", "null"],
            "items": {"type": "string"},
        },
        "enabled": {"type": "boolean"},
    },
}

# Fields each rule type cannot be evaluated without
REQUIRED_FIELDS_BY_TYPE = {
    RuleType.REQUIRED_FIELD: ("fieldPath",),
    RuleType.PATTERN_MATCH: ("fieldPath", "ruleExpression"),
    RuleType.JSON_PATH: ("ruleExpression",),
    RuleType.XPATH: ("ruleExpression",),
    RuleType.CUSTOM: (),
}

_schema_validator = Draft7Validator(CUSTOM_RULE_SCHEMA)


@dataclass
class CustomRuleRequest:
    """User-submitted rule definition"""

    rule_id: str
    name: str
    rule_type: str
    severity: str
    enabled: bool = True
    description: str = ""
    category: Optional[str] = None
    field_path: Optional[str] = None
    rule_expression: Optional[str] = None
    constraint_details: Optional[str] = None
    applicable_model_types: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CustomRuleRequest":
        """Build a request from its camelCase wire form, checking it against the schema"""
        problems = [
            _format_schema_error(error)
            for error in sorted(_schema_validator.iter_errors(payload), key=lambda e: list(e.path))
        ]
        if problems:
            rule_id = payload.get("ruleId") if isinstance(payload, dict) else None
            raise InvalidRuleDefinition(f"Invalid custom rule {rule_id or '<unnamed>'}", problems)

        return cls(
            rule_id=payload["ruleId"].strip(),
            name=payload["name"],
            rule_type=payload["ruleType"],
            severity=payload["severity"],
            enabled=payload["enabled"],
            description=payload.get("description") or "",
            category=payload.get("category"),
            field_path=payload.get("fieldPath"),
            rule_expression=payload.get("ruleExpression"),
            constraint_details=payload.get("constraintDetails"),
            applicable_model_types=list(payload.get("applicableModelTypes") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "name": self.name,
            "description": self.description,
            "ruleType": self.rule_type,
            "severity": self.severity,
            "category": self.category,
            "fieldPath": self.field_path,
            "ruleExpression": self.rule_expression,
            "constraintDetails": self.constraint_details,
            "applicableModelTypes": list(self.applicable_model_types),
            "enabled": self.enabled,
        }

    def to_rule(self) -> Rule:
        """Convert to a non-built-in Rule, raising InvalidRuleDefinition on bad values"""
        problems = []

        try:
            rule_type = RuleType.from_string(self.rule_type)
        except ValueError as e:
            problems.append(str(e))
            rule_type = None

        try:
            severity = Severity.from_string(self.severity)
        except ValueError as e:
            problems.append(str(e))
            severity = None

        model_types = []
        for value in self.applicable_model_types or []:
            try:
                model_types.append(ModelType.from_string(value))
            except ValueError as e:
                problems.append(str(e))

        if rule_type is not None:
            wire_values = {
                "fieldPath": self.field_path,
                "ruleExpression": self.rule_expression,
            }
            for required in REQUIRED_FIELDS_BY_TYPE[rule_type]:
                if not (wire_values[required] or "").strip():
                    problems.append(f"{required} is required for {rule_type.value} rules")

        if problems:
            raise InvalidRuleDefinition(f"Invalid custom rule {self.rule_id}", problems)

        return Rule(
            id=self.rule_id,
            name=self.name,
            description=self.description,
            rule_type=rule_type,
            severity=severity,
            applicable_model_types=tuple(model_types),
            built_in=False,
            category=self.category or None,
            field_path=self.field_path,
            constraint_details=self.constraint_details,
            rule_expression=self.rule_expression,
        )


def _format_schema_error(error) -> str:
    location = ".".join(str(p) for p in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message


def load_custom_rules(path: Path) -> List[CustomRuleRequest]:
    """Load custom rule requests from a JSON or YAML file

    The file holds either a list of requests or a mapping with a ``rules`` list.
    """
    path = Path(path)
    logger.info(f"Loading custom rules from {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                payload = yaml.safe_load(f)
            else:
                payload = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidRuleDefinition(f"Could not parse rules file {path}", [str(e)]) from e

    if isinstance(payload, dict):
        payload = payload.get("rules")

    if not isinstance(payload, list):
        raise InvalidRuleDefinition(
            f"Rules file {path} must contain a list of rules or a 'rules' list"
        )

    requests = [CustomRuleRequest.from_dict(item) for item in payload]
    logger.debug(f"Parsed {len(requests)} custom rule requests from {path}")
    return requests
