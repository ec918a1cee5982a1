"""Tests for custom rule requests and rule files"""

import json

import pytest
import yaml

from oscalint.errors import InvalidRuleDefinition
from oscalint.formats import ModelType
from oscalint.rules import CustomRuleRequest, RuleType, load_custom_rules


def payload(**overrides):
    data = {
        "ruleId": "org-title-prefix",
        "name": "Title Prefix",
        "description": "Titles start with the organization name",
        "ruleType": "pattern-match",
        "severity": "warning",
        "category": "metadata",
        "fieldPath": "/metadata/title",
        "ruleExpression": "^ACME ",
        "constraintDetails": "title starts with 'ACME '",
        "applicableModelTypes": ["system-security-plan"],
        "enabled": True,
    }
    data.update(overrides)
    return data


def test_from_dict_builds_request():
    request = CustomRuleRequest.from_dict(payload())
    rule = request.to_rule()

    assert rule.id == "org-title-prefix"
    assert rule.rule_type is RuleType.PATTERN_MATCH
    assert rule.applicable_model_types == (ModelType.SYSTEM_SECURITY_PLAN,)
    assert rule.built_in is False


def test_from_dict_reports_every_schema_problem():
    data = payload(severity=3)
    del data["ruleId"]

    with pytest.raises(InvalidRuleDefinition) as excinfo:
        CustomRuleRequest.from_dict(data)

    assert len(excinfo.value.problems) == 2
    assert "ruleId" in str(excinfo.value)


def test_to_dict_round_trips_wire_names():
    data = payload()
    assert CustomRuleRequest.from_dict(data).to_dict() == data


@pytest.mark.parametrize("overrides, expected", [
    ({"ruleType": "cardinality"}, "Unknown validation rule type"),
    ({"severity": "critical"}, "Unknown validation rule severity"),
    ({"applicableModelTypes": ["ssp"]}, "Unknown OSCAL model type"),
    ({"fieldPath": None}, "fieldPath is required"),
    ({"ruleType": "jsonpath", "ruleExpression": " "}, "ruleExpression is required"),
])
def test_to_rule_rejects_bad_values(overrides, expected):
    request = CustomRuleRequest.from_dict(payload(**overrides))
    with pytest.raises(InvalidRuleDefinition, match=expected):
        request.to_rule()


def test_custom_rule_type_needs_no_expression():
    request = CustomRuleRequest.from_dict(
        payload(ruleType="custom", fieldPath=None, ruleExpression=None)
    )
    assert request.to_rule().rule_type is RuleType.CUSTOM


def test_underscored_rule_type_is_accepted():
    request = CustomRuleRequest.from_dict(payload(ruleType="PATTERN_MATCH"))
    assert request.to_rule().rule_type is RuleType.PATTERN_MATCH


def test_load_rules_from_yaml_mapping(tmp_path):
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(yaml.safe_dump({"rules": [payload(), payload(ruleId="second")]}))

    requests = load_custom_rules(rules_file)

    assert [r.rule_id for r in requests] == ["org-title-prefix", "second"]


def test_load_rules_from_json_list(tmp_path):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(json.dumps([payload()]))

    assert len(load_custom_rules(rules_file)) == 1


def test_load_rules_rejects_non_list(tmp_path):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(json.dumps({"rule": payload()}))

    with pytest.raises(InvalidRuleDefinition):
        load_custom_rules(rules_file)


def test_load_rules_rejects_unparseable_file(tmp_path):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text("{not json")

    with pytest.raises(InvalidRuleDefinition, match="Could not parse"):
        load_custom_rules(rules_file)
