"""Shared fixtures for oscalint tests"""

import copy
import json

import pytest

from oscalint.rules import RuleRegistry
from oscalint.validation import CustomEvaluatorRegistry, RuleEvaluator, ValidationRun

METADATA = {
    "title": "Sample Document",
    "last-modified": "2024-01-31T12:00:00Z",
    "version": "1.0",
    "oscal-version": "1.1.2",
}

CATALOG = {
    "catalog": {
        "uuid": "74c8ba1e-5cd4-4ad1-bbfd-d888e2f6c724",
        "metadata": METADATA,
        "groups": [
            {
                "id": "ac",
                "title": "Access Control",
                "controls": [
                    {
                        "id": "ac-1",
                        "title": "Policy and Procedures",
                        "params": [{"id": "ac-01_odp.01"}],
                    },
                    {
                        "id": "ac-2",
                        "title": "Account Management",
                        "links": [{"href": "#res-1", "rel": "reference"}],
                    },
                ],
            }
        ],
        "back-matter": {
            "resources": [
                {"uuid": "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d", "title": "Reference"}
            ]
        },
    }
}

SSP = {
    "system-security-plan": {
        "uuid": "b2c3d4e5-f6a7-4b8c-9d0e-1f2a3b4c5d6e",
        "metadata": METADATA,
        "import-profile": {"href": "#profile"},
        "system-characteristics": {
            "system-ids": [{"id": "sys-1"}],
            "system-name": "Sample System",
            "security-sensitivity-level": "moderate",
            "system-information": {
                "information-types": [{"title": "System Data"}]
            },
            "status": {"state": "operational"},
            "authorization-boundary": {"description": "The boundary"},
        },
        "system-implementation": {
            "components": [
                {
                    "uuid": "c3d4e5f6-a7b8-4c9d-8e1f-2a3b4c5d6e7f",
                    "type": "this-system",
                    "title": "Sample System",
                    "responsible-roles": [{"role-id": "admin"}],
                }
            ]
        },
        "control-implementation": {
            "description": "Implementation",
            "implemented-requirements": [
                {"uuid": "d4e5f6a7-b8c9-4d0e-9f2a-3b4c5d6e7f80", "control-id": "ac-1"}
            ],
        },
    }
}

POAM = {
    "plan-of-action-and-milestones": {
        "uuid": "e5f6a7b8-c9d0-4e1f-8a3b-4c5d6e7f8091",
        "metadata": METADATA,
        "poam-items": [
            {
                "uuid": "f6a7b8c9-d0e1-4f2a-9b4c-5d6e7f809102",
                "title": "Weak passwords",
                "origins": [{"actors": [{"type": "party", "actor-uuid": "x"}]}],
            }
        ],
    }
}

CATALOG_XML = """<?xml version="1.0" encoding="UTF-8"?>
<catalog xmlns="http://csrc.nist.gov/ns/oscal/1.0" uuid="74c8ba1e-5cd4-4ad1-bbfd-d888e2f6c724">
  <metadata>
    <title>Sample Catalog</title>
    <last-modified>2024-01-31T12:00:00Z</last-modified>
    <version>1.0</version>
    <oscal-version>1.1.2</oscal-version>
  </metadata>
  <group id="ac">
    <title>Access Control</title>
    <control id="ac-1">
      <title>Policy and Procedures</title>
    </control>
    <control id="ac-2">
      <title>Account Management</title>
    </control>
  </group>
</catalog>
"""


@pytest.fixture
def catalog():
    return copy.deepcopy(CATALOG)


@pytest.fixture
def ssp():
    return copy.deepcopy(SSP)


@pytest.fixture
def poam():
    return copy.deepcopy(POAM)


@pytest.fixture
def catalog_json(catalog):
    return json.dumps(catalog, indent=2)


@pytest.fixture
def catalog_xml():
    return CATALOG_XML


@pytest.fixture
def registry():
    return RuleRegistry()


@pytest.fixture
def builtin_registry():
    return RuleRegistry.with_builtin_rules()


@pytest.fixture
def custom_evaluators():
    return CustomEvaluatorRegistry()


@pytest.fixture
def evaluator(custom_evaluators):
    return RuleEvaluator(custom_evaluators)


@pytest.fixture
def validation_run():
    return ValidationRun.default()
