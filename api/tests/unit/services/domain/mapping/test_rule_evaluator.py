#!/usr/bin/env python3
"""Tests for mapping rule evaluation."""

from unittest.mock import patch

import pytest
from pydantic import TypeAdapter

from dcc_api.models.models import MappingRule
from dcc_api.services.domain.mapping.document import SourceDocument
from dcc_api.services.domain.mapping.evaluator import (
    RuleEvaluator,
    convert_scalar,
    datetime_to_date,
    parse_integer,
    parse_number,
)

rule_adapter = TypeAdapter(MappingRule)

POINTS_XML = """<Report>
  <Header>
    <Id>R-1</Id>
    <Date>2024-08-09T14:35:13.094+02:00</Date>
    <Status>PASSED</Status>
    <Blank></Blank>
  </Header>
  <Run isAsFound="true">
    <Point isConform="true"><Value unit="V">10</Value><Label>low</Label></Point>
    <Point isConform="false"><Value unit="V">20</Value></Point>
    <Point><Value unit="V">30</Value><Label>high</Label></Point>
  </Run>
  <Run isAsLeft="true">
    <Point isConform="true"><Value unit="V">10.5</Value></Point>
  </Run>
</Report>"""


def rule(**data):
    return rule_adapter.validate_python(data)


@pytest.fixture
def doc():
    return SourceDocument.from_string(POINTS_XML)


@pytest.fixture
def evaluator(doc):
    return RuleEvaluator(doc)


class TestConversions:
    """Scalar type conversions of raw strings."""

    def test_parse_number(self):
        assert parse_number("10") == 10
        assert parse_number("12.5 mV") == 12.5
        assert parse_number("-3e2") == -300
        assert parse_number(".5") == 0.5
        assert parse_number("abc") is None
        assert parse_number("NaN") is None

    @pytest.mark.parametrize("raw", ["1e999", "-1e999", "9" * 400])
    def test_parse_number_overflow_is_none(self, raw):
        assert parse_number(raw) is None

    def test_parse_integer(self):
        assert parse_integer("42") == 42
        assert parse_integer("42.9") == 42
        assert parse_integer("-7 pcs") == -7
        assert parse_integer("x1") is None

    def test_datetime_to_date(self):
        assert datetime_to_date("2024-08-09T14:35:13.094+02:00") == "2024-08-09"
        assert datetime_to_date("2024-08-09") == "2024-08-09"
        assert datetime_to_date("09.08.2024") == "09.08.2024"

    def test_boolean(self):
        assert convert_scalar("true", "boolean") is True
        assert convert_scalar("1", "boolean") is True
        assert convert_scalar("false", "boolean") is False
        assert convert_scalar("yes", "boolean") is False

    def test_string_passes_through(self):
        assert convert_scalar(" raw ", "string") == " raw "


class TestScalarRules:
    """Scalar extraction from the document root."""

    def test_string(self, doc, evaluator):
        assert evaluator.evaluate(doc.root, rule(target="a", source="Id", type="string")) == "R-1"

    def test_date(self, doc, evaluator):
        assert evaluator.evaluate(doc.root, rule(target="a", source="Header/Date", type="date")) == "2024-08-09"

    @pytest.mark.parametrize("rule_type", ["string", "number", "integer", "boolean", "date"])
    def test_empty_and_missing_sources_yield_none(self, doc, evaluator, rule_type):
        assert evaluator.evaluate(doc.root, rule(target="a", source="Blank", type=rule_type)) is None
        assert evaluator.evaluate(doc.root, rule(target="a", source="Missing", type=rule_type)) is None

    def test_unparseable_number_yields_none(self, doc, evaluator):
        assert evaluator.evaluate(doc.root, rule(target="a", source="Status", type="number")) is None

    def test_rule_without_source_yields_none(self, doc, evaluator):
        assert evaluator.evaluate(doc.root, rule(target="a", type="string")) is None


class TestCompositeRules:
    """concat, template, lookup, firstOf and static."""

    def test_concat_skips_empty_parts(self, doc, evaluator):
        concat = rule(target="a", type="concat", sources=["Id", "Blank", "Status"])
        assert evaluator.evaluate(doc.root, concat) == "R-1 PASSED"

    def test_concat_custom_separator(self, doc, evaluator):
        concat = rule(target="a", type="concat", sources=["Id", "Status"], separator=" / ")
        assert evaluator.evaluate(doc.root, concat) == "R-1 / PASSED"

    def test_concat_all_empty_is_none(self, doc, evaluator):
        concat = rule(target="a", type="concat", sources=["Blank", "Missing"])
        assert evaluator.evaluate(doc.root, concat) is None

    def test_template_keeps_indices_aligned(self, doc, evaluator):
        template = rule(target="a", type="template", template="{0}-{1}-{2}", sources=["Id", "Missing", "Status"])
        assert evaluator.evaluate(doc.root, template) == "R-1--PASSED"

    def test_template_trims_result(self, doc, evaluator):
        template = rule(target="a", type="template", template=" {0} {1} ", sources=["Missing", "Id"])
        assert evaluator.evaluate(doc.root, template) == "R-1"

    def test_template_without_values_is_none(self, doc, evaluator):
        template = rule(target="a", type="template", template="Report {0}", sources=["Missing"])
        assert evaluator.evaluate(doc.root, template) is None

    def test_lookup_precedence(self, doc, evaluator):
        exact = rule(target="a", type="lookup", source="Status", map={"PASSED": "exact", "passed": "lower"})
        lower = rule(target="a", type="lookup", source="Status", map={"passed": "lower", "*": "default"})
        default = rule(target="a", type="lookup", source="Status", map={"failed": "fail", "*": "default"})

        assert evaluator.evaluate(doc.root, exact) == "exact"
        assert evaluator.evaluate(doc.root, lower) == "lower"
        assert evaluator.evaluate(doc.root, default) == "default"

    def test_lookup_passes_unknown_value_through(self, doc, evaluator):
        lookup = rule(target="a", type="lookup", source="Status", map={"R-1": "R-1"})
        assert evaluator.evaluate(doc.root, lookup) == "PASSED"

    def test_lookup_missing_source_is_none(self, doc, evaluator):
        lookup = rule(target="a", type="lookup", source="Missing", map={"*": "default"})
        assert evaluator.evaluate(doc.root, lookup) is None

    def test_first_of(self, doc, evaluator):
        first_of = rule(target="a", type="firstOf", sources=["Missing", "Blank", "Status", "Id"])
        assert evaluator.evaluate(doc.root, first_of) == "PASSED"
        assert evaluator.evaluate(doc.root, rule(target="a", type="firstOf", sources=["Missing"])) is None

    def test_static(self, doc, evaluator):
        assert evaluator.evaluate(doc.root, rule(target="a", type="static", value={"k": 1})) == {"k": 1}


class TestFlagRules:
    """asFoundAsLeft and conformity read flag attributes."""

    def test_as_found_as_left(self, doc, evaluator):
        runs = evaluator.resolver.find_elements(doc.root, "Run")
        flag = rule(target="category", type="asFoundAsLeft")

        assert evaluator.evaluate(runs[0], flag) == "asFound"
        assert evaluator.evaluate(runs[1], flag) == "asLeft"
        assert evaluator.evaluate(doc.root, flag) is None

    def test_conformity_on_context(self, doc, evaluator):
        points = evaluator.resolver.find_elements(doc.root, "Point")
        conformity = rule(target="conformity", type="conformity")

        assert [evaluator.evaluate(p, conformity) for p in points] == ["pass", "fail", None, "pass"]

    def test_conformity_with_source(self):
        doc = SourceDocument.from_string('<Cal><Point isConform="false"/></Cal>')
        evaluator = RuleEvaluator(doc)

        assert evaluator.evaluate(doc.root, rule(target="c", type="conformity", source="Point")) == "fail"
        assert evaluator.evaluate(doc.root, rule(target="c", type="conformity", source="Point/@isConform")) == "fail"
        assert evaluator.evaluate(doc.root, rule(target="c", type="conformity", source="Other")) is None

    def test_conformity_attribute_absent(self):
        doc = SourceDocument.from_string("<Point/>")
        evaluator = RuleEvaluator(doc)
        assert evaluator.evaluate(doc.root, rule(target="c", type="conformity", source=".")) is None


class TestArrayRules:
    """Array extraction and nesting."""

    def test_nested_arrays_keep_document_order(self, doc, evaluator):
        runs = rule(
            target="measurementResults[]",
            type="array",
            source="Run",
            fields=[
                {"target": "category", "type": "asFoundAsLeft"},
                {
                    "target": "results[]",
                    "type": "array",
                    "source": "Point",
                    "fields": [
                        {"target": "value", "source": "Value", "type": "number"},
                        {"target": "unit", "source": "Value/@unit", "type": "string"},
                        {"target": "label", "source": "Label", "type": "string"},
                    ],
                },
            ],
        )

        assert evaluator.evaluate(doc.root, runs) == [
            {
                "category": "asFound",
                "results": [
                    {"value": 10, "unit": "V", "label": "low"},
                    {"value": 20, "unit": "V"},
                    {"value": 30, "unit": "V", "label": "high"},
                ],
            },
            {"category": "asLeft", "results": [{"value": 10.5, "unit": "V"}]},
        ]

    def test_nested_fields_are_relative_to_container(self, doc, evaluator):
        # "Id" lives under Header, so it is not a child of Run
        runs = rule(target="runs[]", type="array", source="Run",
                    fields=[{"target": "id", "source": "Id", "type": "string"}])
        assert evaluator.evaluate(doc.root, runs) == [{}, {}]

    def test_dotted_field_targets_nest(self, doc, evaluator):
        runs = rule(target="runs[]", type="array", source="Run",
                    fields=[{"target": "flags.category", "type": "asFoundAsLeft"}])
        assert evaluator.evaluate(doc.root, runs) == [{"flags": {"category": "asFound"}},
                                                      {"flags": {"category": "asLeft"}}]

    def test_no_containers_gives_empty_list(self, doc, evaluator):
        missing = rule(target="x[]", type="array", source="Missing", fields=[])
        assert evaluator.evaluate(doc.root, missing) == []

    def test_failing_field_is_isolated(self, doc, evaluator):
        runs = rule(
            target="runs[]",
            type="array",
            source="Run",
            fields=[
                {"target": "name", "type": "template", "template": "{0}", "sources": ["Point/Label"]},
                {"target": "category", "type": "asFoundAsLeft"},
            ],
        )

        with patch.object(RuleEvaluator, "_extract_template", side_effect=RuntimeError("boom")):
            result = evaluator.evaluate(doc.root, runs)

        assert result == [{"category": "asFound"}, {"category": "asLeft"}]

    def test_unknown_rule_kind_raises(self, doc, evaluator):
        with pytest.raises(TypeError):
            evaluator.evaluate(doc.root, object())
