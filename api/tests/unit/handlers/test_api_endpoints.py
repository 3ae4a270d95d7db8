#!/usr/bin/env python3
"""Endpoint tests for the DCC converter API."""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from dcc_api.main import app
from dcc_api.services.profiles import load_profile_from_dict
from tests.fixtures.dcc_fixtures import load_vendor_profile_dict, load_vendor_xml

AUTH = {"Authorization": "Bearer devtoken"}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("DEV_TOKEN", raising=False)
    return TestClient(app)


@pytest.fixture
def profile_json():
    return json.dumps(load_vendor_profile_dict())


@pytest.mark.unit
class TestHealthAndAuth:
    """Liveness and bearer token checks."""

    def test_healthz_needs_no_token(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-API-Version" in response.headers

    def test_missing_token(self, client):
        response = client.post("/api/generate/dcc-xml", json={})
        assert response.status_code in (401, 403)

    def test_wrong_token(self, client):
        response = client.post("/api/generate/dcc-xml", json={}, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_configured_token(self, client, monkeypatch):
        monkeypatch.setenv("DEV_TOKEN", "s3cret\r\n")

        assert client.post("/api/generate/dcc-xml", json={}, headers=AUTH).status_code == 401
        ok = client.post("/api/generate/dcc-xml", json={}, headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200


@pytest.mark.unit
class TestGenerateEndpoint:
    """POST /api/generate/dcc-xml"""

    def test_empty_object(self, client):
        response = client.post("/api/generate/dcc-xml", json={}, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["xml"].startswith("<?xml")
        assert "no items (items)" in body["warnings"]

    def test_non_object_body(self, client):
        response = client.post("/api/generate/dcc-xml", json=[1, 2], headers=AUTH)
        assert response.status_code == 422


@pytest.mark.unit
class TestConvertEndpoints:
    """Conversion endpoints with multipart uploads."""

    def test_batch_conversion(self, client, profile_json):
        response = client.post(
            "/api/convert/xml-to-dcc-json",
            files=[
                ("files", ("a.xml", load_vendor_xml().encode(), "application/xml")),
                ("files", ("b.xml", load_vendor_xml().encode(), "application/xml")),
            ],
            data={"profile": profile_json},
            headers=AUTH,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["successful"] == 2
        assert [r["filename"] for r in body["results"]] == ["a.xml", "b.xml"]

    def test_no_files(self, client, profile_json):
        response = client.post("/api/convert/xml-to-dcc-json", data={"profile": profile_json}, headers=AUTH)
        assert response.status_code == 400

    def test_convert_and_generate(self, client, profile_json):
        response = client.post(
            "/api/convert/xml-to-dcc",
            files={"file": ("cert.xml", load_vendor_xml().encode(), "application/xml")},
            data={"profile": profile_json},
            headers=AUTH,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["profile_name"] == "Example Vendor Calibration Report"
        assert body["dcc_json"]["coreData"]["uniqueIdentifier"] == "KS-2024-0815"
        assert "dcc:digitalCalibrationCertificate" in body["xml"]

    def test_overflowing_number_does_not_break_batch(self, client):
        profile = {"name": "Numbers", "mappings": [{"target": "value", "source": "V", "type": "number"}]}

        response = client.post(
            "/api/convert/xml-to-dcc-json",
            files=[
                ("files", ("huge.xml", b"<C><V>1e999</V></C>", "application/xml")),
                ("files", ("b.xml", b"<C><V>2.5</V></C>", "application/xml")),
            ],
            data={"profile": json.dumps(profile)},
            headers=AUTH,
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert results[0]["dcc_json"] == {}
        assert results[1]["dcc_json"] == {"value": 2.5}


@pytest.mark.unit
class TestInspectAndProfiles:
    """Inspection and profile listing."""

    def test_xml_tree(self, client):
        response = client.post(
            "/api/inspect/xml-tree",
            files={"file": ("cert.xml", load_vendor_xml().encode(), "application/xml")},
            headers=AUTH,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tree"]["name"] == "CalibrationReport"
        assert "CalibrationReport/BusinessPartner/@role" in body["paths"]

    def test_xml_tree_rejects_malformed(self, client):
        response = client.post(
            "/api/inspect/xml-tree",
            files={"file": ("bad.xml", b"<Root>", "application/xml")},
            headers=AUTH,
        )
        assert response.status_code == 400

    def test_list_profiles(self, client, tmp_path):
        registry = [(tmp_path / "vendor_profile.json", load_profile_from_dict(load_vendor_profile_dict()))]

        with patch("dcc_api.handlers.profiles.get_profile_registry", return_value=registry):
            response = client.get("/api/profiles", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        summary = body["profiles"][0]
        assert summary["name"] == "Example Vendor Calibration Report"
        assert summary["schemaNamespace"] == "urn:example:calibration:1.0"
        assert summary["ruleCount"] == 13
        assert summary["source_file"] == "vendor_profile.json"
