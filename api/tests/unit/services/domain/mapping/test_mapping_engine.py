#!/usr/bin/env python3
"""
Unit tests for profile-driven XML to DCC-JSON conversion.

Covers the end-to-end conversion scenarios, rule failure isolation and
profile detection, using a namespaced vendor certificate fixture.
"""

from unittest.mock import patch

import pytest

from dcc_api.services.domain.mapping import (
    RuleEvaluator,
    SourceXmlParseError,
    convert_xml_to_dcc_json,
    detect_profile,
)
from dcc_api.services.profiles import load_profile_from_dict
from tests.fixtures.dcc_fixtures import VENDOR_NAMESPACE, load_vendor_profile_dict, load_vendor_xml, make_profile


@pytest.fixture
def vendor_profile():
    return load_profile_from_dict(load_vendor_profile_dict()).profile


class TestEndToEndScenarios:
    """Small documents with known DCC-JSON output."""

    def test_string_rule_in_default_namespace(self):
        profile = make_profile({"target": "coreData.uniqueIdentifier", "source": "Cert", "type": "string"})

        result = convert_xml_to_dcc_json('<Cal xmlns="urn:x"><Cert>ABC-123</Cert></Cal>', profile)

        assert result == {"coreData": {"uniqueIdentifier": "ABC-123"}}

    def test_conformity_rule(self):
        profile = make_profile({"target": "conformity", "source": "Point", "type": "conformity"})

        assert convert_xml_to_dcc_json('<Cal><Point isConform="false"/></Cal>', profile) == {"conformity": "fail"}
        assert convert_xml_to_dcc_json("<Cal><Point/></Cal>", profile) == {}

    def test_array_preserves_order(self):
        profile = make_profile({
            "target": "results[]",
            "source": "TestPoint",
            "type": "array",
            "fields": [{"target": "setPoint", "source": "SetPoint", "type": "number"}],
        })
        xml = (
            "<Cal>"
            "<TestPoint><SetPoint>10</SetPoint></TestPoint>"
            "<TestPoint><SetPoint>20</SetPoint></TestPoint>"
            "<TestPoint><SetPoint>30</SetPoint></TestPoint>"
            "</Cal>"
        )

        assert convert_xml_to_dcc_json(xml, profile) == {
            "results": [{"setPoint": 10}, {"setPoint": 20}, {"setPoint": 30}]
        }

    def test_empty_values_are_omitted(self):
        profile = make_profile(
            {"target": "coreData.uniqueIdentifier", "source": "Cert", "type": "string"},
            {"target": "coreData.orderNumber", "source": "Order", "type": "string"},
            {"target": "customer.name", "source": "Customer", "type": "string"},
        )

        result = convert_xml_to_dcc_json("<Cal><Cert>A</Cert><Order>  </Order></Cal>", profile)

        assert result == {"coreData": {"uniqueIdentifier": "A"}}

    def test_array_without_matches_is_written_empty(self):
        profile = make_profile({"target": "items[]", "source": "Device", "type": "array", "fields": []})
        assert convert_xml_to_dcc_json("<Cal/>", profile) == {"items": []}

    def test_malformed_xml_raises(self):
        profile = make_profile({"target": "a", "source": "A", "type": "string"})
        with pytest.raises(SourceXmlParseError):
            convert_xml_to_dcc_json("<Cal><Unclosed></Cal>", profile)


class TestVendorCertificate:
    """Full conversion of the vendor fixture."""

    def test_full_conversion(self, vendor_profile):
        result = convert_xml_to_dcc_json(load_vendor_xml(), vendor_profile)

        assert result["coreData"] == {
            "uniqueIdentifier": "KS-2024-0815",
            "beginPerformanceDate": "2024-08-09",
            "languageCode": "en",
            "countryCodeISO3166_1": "DE",
        }
        assert result["calibrationLaboratory"] == {
            "name": "Example Calibration Lab & Co.",
            "street": "Bundesallee 100",
            "city": "Braunschweig",
        }
        assert result["customer"] == {"name": "ACME Process GmbH", "city": "Hamburg"}
        assert result["respPersons"] == [{"name": "Erika Mustermann", "isMainSigner": True}]
        assert result["items"] == [{
            "name": "Pressure transmitter",
            "manufacturer": "Example Instruments",
            "serialNumber": "SN12345",
        }]
        assert result["statements"] == [{"conformity": "pass"}]

    def test_measurement_results(self, vendor_profile):
        result = convert_xml_to_dcc_json(load_vendor_xml(), vendor_profile)
        groups = result["measurementResults"]

        assert [g["name"] for g in groups] == ["As found", "As left"]
        assert [g["category"] for g in groups] == ["asFound", "asLeft"]
        assert [p["setPoint"] for p in groups[0]["results"]] == [0, 5, 10]
        assert [p["conformity"] for p in groups[0]["results"]] == ["pass", "pass", "fail"]
        assert groups[0]["results"][2] == {
            "setPoint": 10,
            "setPointUnit": "bar",
            "measuredValue": 10.2,
            "measuredUnit": "bar",
            "uncertainty": 0.01,
            "conformity": "fail",
        }
        assert "uncertainty" not in groups[1]["results"][0]

    def test_same_result_without_namespace_prefix(self, vendor_profile):
        prefixed = load_vendor_xml()
        unprefixed = prefixed.replace("cal:", "").replace(f'xmlns:cal="{VENDOR_NAMESPACE}"', "")

        assert convert_xml_to_dcc_json(unprefixed, vendor_profile) == convert_xml_to_dcc_json(prefixed, vendor_profile)

    def test_failing_rule_does_not_abort_conversion(self, vendor_profile):
        with patch.object(RuleEvaluator, "_extract_lookup", side_effect=RuntimeError("boom")):
            result = convert_xml_to_dcc_json(load_vendor_xml(), vendor_profile)

        assert "languageCode" not in result["coreData"]
        assert result["coreData"]["uniqueIdentifier"] == "KS-2024-0815"
        # The lookup field inside statements[] fails on its own; the container object stays
        assert result["statements"] == [{}]
        assert len(result["measurementResults"]) == 2


class TestDetectProfile:
    """Choosing a profile for a document."""

    def test_namespace_match_wins(self, vendor_profile):
        by_root = make_profile(name="By root", rootElement="CalibrationReport")

        detected = detect_profile(load_vendor_xml(), [by_root, vendor_profile])

        assert detected is vendor_profile

    def test_root_element_fallback(self):
        by_root = make_profile(name="By root", rootElement="Cal")
        other = make_profile(name="Other", schemaNamespace="urn:other", rootElement="Other")

        assert detect_profile('<Cal xmlns="urn:x"/>', [other, by_root]) is by_root

    def test_no_match(self):
        other = make_profile(name="Other", schemaNamespace="urn:other")
        assert detect_profile("<Cal/>", [other]) is None

    def test_unparseable_xml(self, vendor_profile):
        assert detect_profile("<Cal", [vendor_profile]) is None
