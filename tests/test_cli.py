"""Tests for the oscalint command line"""

import json

import pytest
import yaml
from click.testing import CliRunner

from oscalint.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def catalog_file(tmp_path, catalog):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog))
    return path


@pytest.fixture
def invalid_file(tmp_path, catalog):
    del catalog["catalog"]["metadata"]["title"]
    path = tmp_path / "invalid.json"
    path.write_text(json.dumps(catalog))
    return path


def test_validate_valid_file(runner, catalog_file):
    result = runner.invoke(cli, ["validate", str(catalog_file)])
    assert result.exit_code == 0, result.output
    assert "VALID" in result.output


def test_validate_invalid_file_exits_nonzero(runner, catalog_file, invalid_file):
    result = runner.invoke(cli, ["--quiet", "validate", "--json", "--workers", "1",
                                 str(catalog_file), str(invalid_file)])
    assert result.exit_code == 1
    assert '"ruleId": "metadata-title-required"' in result.output


def test_undecodable_file_fails_alone(runner, tmp_path, catalog_file):
    bad_file = tmp_path / "latin1.json"
    bad_file.write_bytes(b'{"catalog": {"uuid": "\xff\xfe"}}')

    result = runner.invoke(cli, ["--quiet", "validate", "--json", "--workers", "1",
                                 str(catalog_file), str(bad_file)])

    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    payload = json.loads(result.output)
    assert [r["success"] for r in payload["results"]] == [True, False]
    assert payload["results"][1]["error"].startswith("Invalid UTF-8")


def test_validate_json_output(runner, catalog_file):
    result = runner.invoke(cli, ["--quiet", "validate", "--json", str(catalog_file)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["results"][0]["result"]["modelType"] == "catalog"


def test_validate_writes_summary(runner, tmp_path, catalog_file, invalid_file):
    summary = tmp_path / "reports" / "summary.json"
    runner.invoke(cli, ["validate", "-o", str(summary), str(catalog_file), str(invalid_file)])

    data = json.loads(summary.read_text())
    assert data["summary"]["total_files"] == 2
    assert data["summary"]["invalid_files"] == 1
    assert data["must_fix"][0]["rule"] == "metadata-title-required"


def test_validate_with_rules_file(runner, tmp_path, catalog_file):
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(yaml.safe_dump([{
        "ruleId": "require-remarks",
        "name": "Remarks Required",
        "ruleType": "required-field",
        "severity": "error",
        "fieldPath": "/metadata/remarks",
        "enabled": True,
    }]))

    result = runner.invoke(cli, ["--quiet", "validate", "--json", "--rules-file", str(rules_file),
                                 str(catalog_file)])

    assert result.exit_code == 1
    assert '"ruleId": "require-remarks"' in result.output


def test_validate_with_bad_rules_file(runner, tmp_path, catalog_file):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(json.dumps([{"ruleId": "incomplete"}]))

    result = runner.invoke(cli, ["validate", "--rules-file", str(rules_file), str(catalog_file)])
    assert result.exit_code == 1


def test_validate_without_inputs(runner):
    assert runner.invoke(cli, ["validate"]).exit_code == 1


def test_convert_to_yaml(runner, tmp_path, catalog_file, catalog):
    output_dir = tmp_path / "converted"
    result = runner.invoke(cli, ["convert", "--to", "yaml", "-o", str(output_dir), str(catalog_file)])

    assert result.exit_code == 0, result.output
    assert yaml.safe_load((output_dir / "catalog.yaml").read_text()) == catalog


def test_rules_json_for_model_type(runner):
    result = runner.invoke(cli, ["--quiet", "rules", "--model-type", "plan-of-action-and-milestones", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    ids = {rule["id"] for rule in payload["rules"]}
    assert "poam-items-required" in ids
    assert "ssp-system-id-required" not in ids


def test_rules_by_category(runner):
    result = runner.invoke(cli, ["--quiet", "rules", "--category", "profile", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert {rule["category"] for rule in payload["rules"]} == {"profile"}
    assert payload["rulesByCategory"] == {"profile": 3}


def test_rules_table(runner):
    result = runner.invoke(cli, ["rules"])
    assert result.exit_code == 0, result.output
    assert "Built-in:" in result.output


def test_doctor(runner):
    assert runner.invoke(cli, ["doctor"]).exit_code == 0
