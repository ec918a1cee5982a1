"""
Built-in OSCAL validation rules

Declares the rule categories and rules shipped with oscalint, together with
the evaluators behind the built-in custom rules. Per-item and uniqueness
checks run as custom rules because a single field path only looks at the
first match.
"""

import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..documents.base_view import DocumentView, is_empty
from ..documents.json_view import MODEL_ROOTS
from ..formats import ModelType, QueryLanguage
from ..validation.diagnostics import Diagnostic
from ..validation.evaluator import compile_pattern
from .model import Rule, RuleType, Severity

logger = logging.getLogger(__name__)

# Patterns follow the OSCAL metaschema datatypes
DATE_TIME_WITH_TIMEZONE = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
SEMANTIC_VERSION = r"^\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?$"
UUID_V4_V5 = r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[45][0-9A-Fa-f]{3}-[89ABab][0-9A-Fa-f]{3}-[0-9A-Fa-f]{12}$"
TOKEN = r"^[A-Za-z_][A-Za-z0-9_.-]*$"

CATEGORIES = [
    ("metadata", "Metadata", "Rules validating document metadata and common properties"),
    ("security-controls", "Security Controls", "Rules for control definitions and implementations"),
    ("identifiers", "Identifiers", "Rules for IDs, UUIDs, and identifier references"),
    ("references", "References", "Rules for links, citations, and external references"),
    ("structural", "Document Structure", "Rules for overall document structure and organization"),
    ("profile", "Profile-Specific", "Rules specific to OSCAL Profile documents"),
    ("component", "Component-Specific", "Rules specific to Component Definition documents"),
    ("ssp", "SSP-Specific", "Rules specific to System Security Plan documents"),
    ("assessment", "Assessment", "Rules for Assessment Plans and Results"),
    ("poam", "POA&M", "Rules for Plans of Action and Milestones"),
]

CATALOG_AND_PROFILE = (ModelType.CATALOG, ModelType.PROFILE)


def _rule(rule_id: str, name: str, description: str, rule_type: RuleType, category: str,
          field_path: Optional[str] = None, model_types: Iterable[ModelType] = (),
          severity: Severity = Severity.ERROR, expression: Optional[str] = None,
          constraint: Optional[str] = None) -> Rule:
    return Rule(
        id=rule_id,
        name=name,
        description=description,
        rule_type=rule_type,
        severity=severity,
        applicable_model_types=tuple(model_types),
        built_in=True,
        category=category,
        field_path=field_path,
        constraint_details=constraint,
        rule_expression=expression,
    )


def builtin_rules() -> List[Rule]:
    """The built-in rule catalog in registration order"""
    ssp = (ModelType.SYSTEM_SECURITY_PLAN,)
    characteristics = "/system-security-plan/system-characteristics"

    return [
        # Metadata, common to every model
        _rule("metadata-title-required", "Document Title Required",
              "Every OSCAL document must have a title in its metadata section",
              RuleType.REQUIRED_FIELD, "metadata", "/metadata/title"),
        _rule("metadata-last-modified-required", "Last Modified Date Required",
              "The last-modified timestamp must be present in document metadata",
              RuleType.REQUIRED_FIELD, "metadata", "/metadata/last-modified"),
        _rule("metadata-last-modified-format", "Last Modified Date Format",
              "Last modified date must be in ISO 8601 format (YYYY-MM-DDTHH:MM:SSZ)",
              RuleType.PATTERN_MATCH, "metadata", "/metadata/last-modified",
              expression=DATE_TIME_WITH_TIMEZONE,
              constraint="date-time with timezone, e.g. 2024-01-31T12:00:00Z"),
        _rule("metadata-version-required", "Document Version Required",
              "Every OSCAL document must have a version in its metadata",
              RuleType.REQUIRED_FIELD, "metadata", "/metadata/version"),
        _rule("metadata-oscal-version-required", "OSCAL Version Required",
              "The OSCAL version must be specified in document metadata",
              RuleType.REQUIRED_FIELD, "metadata", "/metadata/oscal-version"),
        _rule("metadata-oscal-version-format", "OSCAL Version Format",
              "OSCAL version must follow semantic versioning (e.g., 1.0.4)",
              RuleType.PATTERN_MATCH, "metadata", "/metadata/oscal-version",
              expression=SEMANTIC_VERSION, constraint="semantic version, e.g. 1.1.2"),

        # Security controls
        _rule("control-id-required", "Control ID Required",
              "Every security control must have a unique identifier",
              RuleType.CUSTOM, "security-controls", "/controls/id", CATALOG_AND_PROFILE),
        _rule("control-title-required", "Control Title Required",
              "Every security control must have a descriptive title",
              RuleType.CUSTOM, "security-controls", "/controls/title", CATALOG_AND_PROFILE),
        _rule("control-id-unique", "Control IDs Must Be Unique",
              "Control identifiers must be unique within a catalog or profile",
              RuleType.CUSTOM, "security-controls", "/controls/id", CATALOG_AND_PROFILE),
        _rule("control-parameter-id-required", "Parameter ID Required",
              "Control parameters must have unique identifiers",
              RuleType.CUSTOM, "security-controls", "/controls/params/id", CATALOG_AND_PROFILE),
        _rule("catalog-controls-present-json", "Catalog Defines Controls",
              "A catalog should define at least one control",
              RuleType.JSON_PATH, "security-controls", "/catalog/controls", (ModelType.CATALOG,),
              severity=Severity.WARNING, expression="$.catalog..controls[*]",
              constraint="at least one control"),
        _rule("catalog-controls-present-xml", "Catalog Defines Controls",
              "A catalog should define at least one control",
              RuleType.XPATH, "security-controls", "/catalog/control", (ModelType.CATALOG,),
              severity=Severity.WARNING, expression="//o:control",
              constraint="at least one control"),

        # Identifiers
        _rule("uuid-required", "Document UUID Required",
              "Every OSCAL document must have a unique UUID identifier",
              RuleType.REQUIRED_FIELD, "identifiers", "/*/uuid"),
        _rule("uuid-format", "UUID Format Validation",
              "UUIDs must conform to RFC 4122 format (e.g., 123e4567-e89b-42d3-a456-426614174000)",
              RuleType.PATTERN_MATCH, "identifiers", "/*/uuid",
              expression=UUID_V4_V5, constraint="RFC 4122 version 4 or 5 UUID"),
        _rule("id-format", "ID Format Validation",
              "IDs must be valid tokens (no spaces, must start with letter or underscore)",
              RuleType.CUSTOM, "identifiers", "/*/@id"),

        # References
        _rule("link-href-required", "Link HREF Required",
              "Every link element must have an href attribute",
              RuleType.CUSTOM, "references", "/*/links/@href"),
        _rule("resource-uuid-required", "Resource UUID Required",
              "Back-matter resources must have unique UUIDs",
              RuleType.CUSTOM, "references", "/back-matter/resources/uuid"),
        _rule("resource-uuid-unique", "Resource UUIDs Must Be Unique",
              "Resource UUIDs must be unique within the document's back-matter",
              RuleType.CUSTOM, "references", "/back-matter/resources/uuid"),

        # Structure
        _rule("single-model-root", "Single OSCAL Model Root",
              "A document must hold exactly one OSCAL model at its root",
              RuleType.CUSTOM, "structural", "/"),

        # Profiles
        _rule("profile-import-required", "Profile Import Required",
              "Profiles must import at least one catalog or profile",
              RuleType.REQUIRED_FIELD, "profile", "/profile/imports", (ModelType.PROFILE,)),
        _rule("profile-import-href-required", "Import HREF Required",
              "Every profile import must specify an href to the source catalog/profile",
              RuleType.REQUIRED_FIELD, "profile", "/profile/imports/href", (ModelType.PROFILE,)),
        _rule("profile-merge-method", "Merge Method Validation",
              "Profile merge method must be 'use-first', 'merge', or 'keep'",
              RuleType.PATTERN_MATCH, "profile", "/profile/merge/combine/method", (ModelType.PROFILE,),
              expression=r"^(use-first|merge|keep)$", constraint="one of use-first, merge, keep"),

        # Component definitions
        _rule("component-uuid-required", "Component UUID Required",
              "Every component must have a unique UUID",
              RuleType.REQUIRED_FIELD, "component", "/component-definition/components/uuid",
              (ModelType.COMPONENT_DEFINITION,)),
        _rule("component-type-required", "Component Type Required",
              "Every component must specify its type",
              RuleType.REQUIRED_FIELD, "component", "/component-definition/components/type",
              (ModelType.COMPONENT_DEFINITION,)),
        _rule("component-title-required", "Component Title Required",
              "Every component must have a descriptive title",
              RuleType.REQUIRED_FIELD, "component", "/component-definition/components/title",
              (ModelType.COMPONENT_DEFINITION,)),
        _rule("component-description-required", "Component Description Required",
              "Every component must have a description",
              RuleType.REQUIRED_FIELD, "component", "/component-definition/components/description",
              (ModelType.COMPONENT_DEFINITION,)),

        # System security plans
        _rule("ssp-system-id-required", "System ID Required",
              "System Security Plans must identify the system being documented",
              RuleType.REQUIRED_FIELD, "ssp", f"{characteristics}/system-ids", ssp),
        _rule("ssp-security-sensitivity-required", "Security Sensitivity Level Required",
              "SSP must specify the system's security sensitivity level",
              RuleType.REQUIRED_FIELD, "ssp", f"{characteristics}/security-sensitivity-level", ssp),
        _rule("ssp-system-info-required", "System Information Required",
              "SSP must include system-characteristics section",
              RuleType.REQUIRED_FIELD, "ssp", characteristics, ssp),
        _rule("ssp-control-implementation-required", "Control Implementation Required",
              "SSP must document implementation of security controls",
              RuleType.REQUIRED_FIELD, "ssp", "/system-security-plan/control-implementation", ssp),
        _rule("ssp-authorization-boundary-required", "Authorization Boundary Required",
              "SSP must define the system authorization boundary",
              RuleType.REQUIRED_FIELD, "ssp", f"{characteristics}/authorization-boundary", ssp,
              severity=Severity.WARNING),
        _rule("ssp-system-status-required", "System Status Required",
              "SSP system characteristics must state the operational status of the system",
              RuleType.REQUIRED_FIELD, "ssp", f"{characteristics}/status/state", ssp),
        _rule("ssp-information-types-required", "Information Types Required",
              "SSP must categorize at least one information type",
              RuleType.REQUIRED_FIELD, "ssp",
              f"{characteristics}/system-information/information-types", ssp),
        _rule("ssp-component-responsible-roles", "Component Responsible Roles",
              "Every system component should name its responsible roles",
              RuleType.CUSTOM, "ssp",
              "/system-security-plan/system-implementation/components/responsible-roles", ssp,
              severity=Severity.WARNING),

        # Assessment plans and results
        _rule("assessment-plan-import-ssp-required", "Assessment Plan SSP Import Required",
              "Assessment plans must reference the SSP being assessed",
              RuleType.REQUIRED_FIELD, "assessment", "/assessment-plan/import-ssp/href",
              (ModelType.ASSESSMENT_PLAN,)),
        _rule("assessment-reviewed-controls-required", "Reviewed Controls Required",
              "Assessment plans must define the controls under review",
              RuleType.REQUIRED_FIELD, "assessment", "/assessment-plan/reviewed-controls",
              (ModelType.ASSESSMENT_PLAN,)),
        _rule("assessment-subject-required", "Assessment Subject Required",
              "Assessments must identify what is being assessed",
              RuleType.REQUIRED_FIELD, "assessment", "/assessment-plan/assessment-subjects",
              (ModelType.ASSESSMENT_PLAN,), severity=Severity.WARNING),
        _rule("assessment-results-import-ap-required", "Assessment Plan Import Required",
              "Assessment results must reference the assessment plan",
              RuleType.REQUIRED_FIELD, "assessment", "/assessment-results/import-ap/href",
              (ModelType.ASSESSMENT_RESULTS,)),
        _rule("assessment-results-required", "Assessment Results Required",
              "Assessment Results must contain actual result data",
              RuleType.REQUIRED_FIELD, "assessment", "/assessment-results/results",
              (ModelType.ASSESSMENT_RESULTS,)),

        # Plans of action and milestones
        _rule("poam-items-required", "POA&M Items Required",
              "A plan of action and milestones must list at least one item",
              RuleType.REQUIRED_FIELD, "poam", "/plan-of-action-and-milestones/poam-items",
              (ModelType.PLAN_OF_ACTION_AND_MILESTONES,)),
        _rule("poam-origin-actors", "POA&M Origin Actors",
              "Every POA&M item origin must list its actors",
              RuleType.CUSTOM, "poam", "/plan-of-action-and-milestones/poam-items/origins/actors",
              (ModelType.PLAN_OF_ACTION_AND_MILESTONES,)),
    ]


def load_builtin_rules(registry) -> None:
    """Declare built-in categories and register built-in rules"""
    for category_id, name, description in CATEGORIES:
        registry.add_category(category_id, name, description)
    registry.register_all(builtin_rules())


# -- built-in custom evaluators --

def _select(view: DocumentView, jsonpath: str, xpath: str) -> List[Any]:
    if view.supports(QueryLanguage.JSONPATH):
        return view.query(jsonpath, QueryLanguage.JSONPATH)
    if view.supports(QueryLanguage.XPATH):
        return view.query(xpath, QueryLanguage.XPATH)
    return []


def _label(node: Any, index: int) -> str:
    if isinstance(node, dict):
        for key in ("id", "uuid", "title"):
            if not is_empty(node.get(key)):
                return f"'{node[key]}'"
    elif hasattr(node, "get"):
        for key in ("id", "uuid"):
            if node.get(key):
                return f"'{node.get(key)}'"
    return f"#{index + 1}"


def _missing(view: DocumentView, items_jsonpath: str, json_field: str,
             violators_xpath: str) -> List[Any]:
    """Items lacking ``json_field`` in JSON/YAML, or matched by the violator XPath in XML"""
    if view.supports(QueryLanguage.JSONPATH):
        items = view.query(items_jsonpath, QueryLanguage.JSONPATH)
        return [item for item in items if isinstance(item, dict) and is_empty(item.get(json_field))]
    if view.supports(QueryLanguage.XPATH):
        return view.query(violators_xpath, QueryLanguage.XPATH)
    return []


def _per_item_check(rule: Rule, items_jsonpath: str, json_field: str, violators_xpath: str,
                    noun: str) -> Callable[[DocumentView], List[Diagnostic]]:
    def evaluate(view: DocumentView) -> List[Diagnostic]:
        return [
            Diagnostic(
                message=f"{rule.name}: {noun} {_label(node, index)} has no {json_field}",
                severity=rule.severity,
                path=rule.field_path,
                line=getattr(node, "sourceline", None),
                rule_id=rule.id,
            )
            for index, node in enumerate(_missing(view, items_jsonpath, json_field, violators_xpath))
        ]
    return evaluate


def _uniqueness_check(rule: Rule, jsonpath: str, xpath: str,
                      noun: str) -> Callable[[DocumentView], List[Diagnostic]]:
    def evaluate(view: DocumentView) -> List[Diagnostic]:
        values = [str(value) for value in _select(view, jsonpath, xpath) if not is_empty(value)]
        duplicates = [value for value, count in Counter(values).items() if count > 1]
        return [
            Diagnostic(
                message=f"{rule.name}: {noun} '{value}' is used {Counter(values)[value]} times",
                severity=rule.severity,
                path=rule.field_path,
                rule_id=rule.id,
            )
            for value in duplicates
        ]
    return evaluate


def _token_check(rule: Rule) -> Callable[[DocumentView], List[Diagnostic]]:
    pattern = compile_pattern(TOKEN)

    def evaluate(view: DocumentView) -> List[Diagnostic]:
        ids = _select(view, "$..id", "//@id")
        return [
            Diagnostic(
                message=f"{rule.name}: '{value}' is not a valid identifier token",
                severity=rule.severity,
                path=rule.field_path,
                rule_id=rule.id,
            )
            for value in ids
            if isinstance(value, str) and not pattern.search(value)
        ]
    return evaluate


def _single_root_check(rule: Rule) -> Callable[[DocumentView], List[Diagnostic]]:
    def evaluate(view: DocumentView) -> List[Diagnostic]:
        data = getattr(view, "data", None)
        if not isinstance(data, dict):
            return []
        roots = [key for key in data if key in MODEL_ROOTS]
        if len(roots) == 1:
            return []
        found = ", ".join(roots) if roots else "none"
        return [Diagnostic(
            message=f"{rule.name}: expected exactly one OSCAL model root, found {found}",
            severity=rule.severity,
            path=rule.field_path,
            rule_id=rule.id,
        )]
    return evaluate


def builtin_evaluators() -> Dict[str, Callable[[DocumentView], List[Diagnostic]]]:
    rules = {rule.id: rule for rule in builtin_rules() if rule.rule_type is RuleType.CUSTOM}

    return {
        "control-id-required": _per_item_check(
            rules["control-id-required"], "$..controls[*]", "id", "//o:control[not(@id)]", "control"),
        "control-title-required": _per_item_check(
            rules["control-title-required"], "$..controls[*]", "title",
            "//o:control[not(normalize-space(o:title))]", "control"),
        "control-id-unique": _uniqueness_check(
            rules["control-id-unique"], "$..controls[*].id", "//o:control/@id", "control id"),
        "control-parameter-id-required": _per_item_check(
            rules["control-parameter-id-required"], "$..params[*]", "id", "//o:param[not(@id)]",
            "parameter"),
        "id-format": _token_check(rules["id-format"]),
        "link-href-required": _per_item_check(
            rules["link-href-required"], "$..links[*]", "href", "//o:link[not(@href)]", "link"),
        "resource-uuid-required": _per_item_check(
            rules["resource-uuid-required"], "$..'back-matter'.resources[*]", "uuid",
            "//o:back-matter/o:resource[not(@uuid)]", "resource"),
        "resource-uuid-unique": _uniqueness_check(
            rules["resource-uuid-unique"], "$..'back-matter'.resources[*].uuid",
            "//o:back-matter/o:resource/@uuid", "resource uuid"),
        "single-model-root": _single_root_check(rules["single-model-root"]),
        "ssp-component-responsible-roles": _per_item_check(
            rules["ssp-component-responsible-roles"],
            "$..'system-implementation'.components[*]", "responsible-roles",
            "//o:system-implementation/o:component[not(o:responsible-role)]", "component"),
        "poam-origin-actors": _per_item_check(
            rules["poam-origin-actors"], "$..'poam-items'[*].origins[*]", "actors",
            "//o:poam-item/o:origin[not(o:actor)]", "origin"),
    }


def register_builtin_evaluators(custom_evaluators) -> None:
    """Register the functions behind the built-in custom rules"""
    for rule_id, evaluator in builtin_evaluators().items():
        custom_evaluators.register(rule_id, evaluator)
    logger.debug(f"Registered {len(custom_evaluators)} built-in custom evaluators")
