"""Integration tests for the comparison API endpoint."""

import copy

from fastapi.testclient import TestClient


class TestComparisonEndpoint:
    """Integration tests for POST /comparison."""

    def test_compare_catalogs(self, test_client: TestClient, sample_catalog, helpers):
        """Test two catalog versions produce keyed sections."""
        right = copy.deepcopy(sample_catalog)
        right["catalog"]["metadata"]["title"] = "Sample Catalog v2"
        right["catalog"]["groups"][1]["controls"].append({"id": "sc-8", "title": "Transmission Confidentiality"})

        response = test_client.post(
            "/api/v1/comparison",
            files={
                "left": helpers.upload(sample_catalog, "left.json"),
                "right": helpers.upload(right, "right.json"),
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "catalog"
        assert data["metadata"]["title_changed"] is True
        assert data["metadata"]["right"]["title"] == "Sample Catalog v2"

        controls = data["sections"][0]
        assert controls["title"] == "Controls"
        first = controls["entries"][0]
        assert first["status"] == "added"
        assert first["key"] == "sc-8"
        assert first["label"] == "sc-8 - Transmission Confidentiality"
        assert first["right"]["title"] == "Transmission Confidentiality"
        assert "left" not in first
        assert data["summary"]["added"] == 1

    def test_compare_xml_with_json(self, test_client: TestClient, sample_catalog, sample_catalog_xml, helpers):
        """Test an XML and a JSON rendering can be compared."""
        response = test_client.post(
            "/api/v1/comparison",
            files={
                "left": helpers.upload(sample_catalog_xml, "catalog.xml", "application/xml"),
                "right": helpers.upload(sample_catalog, "catalog.json"),
            },
        )

        assert response.status_code == 200
        controls = response.json()["sections"][0]
        assert [(e["status"], e["key"]) for e in controls["entries"]][0] == ("added", "sc-7")

    def test_type_mismatch(self, test_client: TestClient, sample_catalog, sample_profile, helpers):
        """Test documents of different types are rejected."""
        response = test_client.post(
            "/api/v1/comparison",
            files={
                "left": helpers.upload(sample_catalog, "catalog.json"),
                "right": helpers.upload(sample_profile, "profile.json"),
            },
        )

        assert response.status_code == 400
        data = response.json()
        helpers.assert_error_response(data, "DOCUMENT_TYPE_MISMATCH")
        assert data["details"] == {"left": "catalog", "right": "profile"}

    def test_unparseable_side(self, test_client: TestClient, sample_catalog, helpers):
        """Test a malformed document on either side fails the request."""
        response = test_client.post(
            "/api/v1/comparison",
            files={
                "left": helpers.upload(sample_catalog, "catalog.json"),
                "right": helpers.upload('{"catalog": ', "broken.json"),
            },
        )

        assert response.status_code == 422
        helpers.assert_error_response(response.json(), "MALFORMED_INPUT")
