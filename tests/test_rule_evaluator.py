"""Tests for per-type rule evaluation"""

from oscalint.documents import JsonDocumentView, load_document
from oscalint.formats import OscalFormat
from oscalint.rules import Rule, RuleType, Severity
from oscalint.validation import Diagnostic


def rule(rule_type, field_path=None, expression=None, severity=Severity.ERROR,
         rule_id="test-rule", constraint=None):
    return Rule(
        id=rule_id,
        name="Test Rule",
        description="",
        rule_type=rule_type,
        severity=severity,
        field_path=field_path,
        rule_expression=expression,
        constraint_details=constraint,
    )


def view(**metadata):
    return JsonDocumentView({"catalog": {"uuid": "x", "metadata": metadata}})


class TestRequiredField:
    def test_absent_field_yields_one_diagnostic_at_path(self, evaluator):
        diagnostics = evaluator.evaluate(rule(RuleType.REQUIRED_FIELD, "/metadata/title"), view())
        assert len(diagnostics) == 1
        assert diagnostics[0].path == "/metadata/title"
        assert diagnostics[0].rule_id == "test-rule"

    def test_present_field_yields_nothing(self, evaluator):
        assert evaluator.evaluate(rule(RuleType.REQUIRED_FIELD, "/metadata/title"), view(title="T")) == []

    def test_blank_field_counts_as_missing(self, evaluator):
        diagnostics = evaluator.evaluate(rule(RuleType.REQUIRED_FIELD, "/metadata/title"), view(title="  "))
        assert len(diagnostics) == 1

    def test_severity_comes_from_rule(self, evaluator):
        diagnostics = evaluator.evaluate(
            rule(RuleType.REQUIRED_FIELD, "/metadata/title", severity=Severity.INFO), view()
        )
        assert diagnostics[0].severity is Severity.INFO


class TestPatternMatch:
    def test_non_matching_value(self, evaluator):
        digits = rule(RuleType.PATTERN_MATCH, "/metadata/version", r"^[0-9]+$", constraint="digits only")
        diagnostics = evaluator.evaluate(digits, view(version="abc"))
        assert len(diagnostics) == 1
        assert "digits only" in diagnostics[0].message

    def test_matching_value(self, evaluator):
        digits = rule(RuleType.PATTERN_MATCH, "/metadata/version", r"^[0-9]+$")
        assert evaluator.evaluate(digits, view(version="123")) == []

    def test_absent_value_is_not_a_violation(self, evaluator):
        digits = rule(RuleType.PATTERN_MATCH, "/metadata/version", r"^[0-9]+$")
        assert evaluator.evaluate(digits, view()) == []

    def test_malformed_pattern_becomes_single_error(self, evaluator):
        broken = rule(RuleType.PATTERN_MATCH, "/metadata/version", "([a-z", severity=Severity.WARNING)
        diagnostics = evaluator.evaluate(broken, view(version="1"))
        assert len(diagnostics) == 1
        assert diagnostics[0].severity is Severity.ERROR
        assert diagnostics[0].path == ""


class TestQueries:
    def test_jsonpath_without_matches_is_a_violation(self, evaluator):
        query = rule(RuleType.JSON_PATH, expression="$.catalog.controls[*]")
        assert len(evaluator.evaluate(query, view())) == 1

    def test_jsonpath_with_matches_passes(self, evaluator):
        query = rule(RuleType.JSON_PATH, expression="$.catalog.metadata.title")
        assert evaluator.evaluate(query, view(title="T")) == []

    def test_malformed_jsonpath(self, evaluator):
        query = rule(RuleType.JSON_PATH, expression="$.catalog[[")
        diagnostics = evaluator.evaluate(query, view())
        assert len(diagnostics) == 1
        assert diagnostics[0].path == ""

    def test_xpath_rule_is_skipped_for_json_documents(self, evaluator):
        query = rule(RuleType.XPATH, expression="//o:control")
        assert evaluator.evaluate(query, view()) == []

    def test_xpath_against_xml(self, evaluator, catalog_xml):
        xml_view = load_document(catalog_xml, OscalFormat.XML)
        assert evaluator.evaluate(rule(RuleType.XPATH, expression="//o:control"), xml_view) == []
        assert len(evaluator.evaluate(rule(RuleType.XPATH, expression="//o:param"), xml_view)) == 1

    def test_xpath_count_of_zero_is_a_violation(self, evaluator, catalog_xml):
        xml_view = load_document(catalog_xml, OscalFormat.XML)
        assert evaluator.evaluate(rule(RuleType.XPATH, expression="count(//o:control)"), xml_view) == []
        assert len(evaluator.evaluate(rule(RuleType.XPATH, expression="count(//o:param)"), xml_view)) == 1

    def test_malformed_xpath(self, evaluator, catalog_xml):
        xml_view = load_document(catalog_xml, OscalFormat.XML)
        diagnostics = evaluator.evaluate(rule(RuleType.XPATH, expression="//o:control["), xml_view)
        assert len(diagnostics) == 1
        assert diagnostics[0].path == ""


class TestCustom:
    def test_missing_evaluator_fails_closed(self, evaluator):
        diagnostics = evaluator.evaluate(rule(RuleType.CUSTOM, severity=Severity.INFO), view())
        assert len(diagnostics) == 1
        assert diagnostics[0].severity is Severity.ERROR
        assert "could not be evaluated" in diagnostics[0].message

    def test_registered_evaluator_is_used(self, evaluator, custom_evaluators):
        @custom_evaluators.evaluator("test-rule")
        def check(document):
            return [Diagnostic("custom finding", Severity.WARNING, "/metadata")]

        diagnostics = evaluator.evaluate(rule(RuleType.CUSTOM), view())
        assert diagnostics == [Diagnostic("custom finding", Severity.WARNING, "/metadata", rule_id="test-rule")]

    def test_raising_evaluator_is_contained(self, evaluator, custom_evaluators):
        def explode(document):
            raise RuntimeError("boom")

        custom_evaluators.register("test-rule", explode)
        diagnostics = evaluator.evaluate(rule(RuleType.CUSTOM), view())
        assert len(diagnostics) == 1
        assert "boom" in diagnostics[0].message
        assert diagnostics[0].is_error

    def test_unregister(self, custom_evaluators):
        custom_evaluators.register("test-rule", lambda document: [])
        custom_evaluators.unregister("test-rule")
        assert "test-rule" not in custom_evaluators
