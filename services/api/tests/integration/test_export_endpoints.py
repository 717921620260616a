"""Integration tests for the export API endpoint."""

import json

import pytest
from fastapi.testclient import TestClient


class TestExportEndpoint:
    """Integration tests for POST /export."""

    @pytest.mark.parametrize(
        "export_format, media_type, filename",
        [
            ("json", "application/json", "poam.json"),
            ("markdown", "text/markdown", "poam.md"),
            ("csv", "text/csv", "poam.csv"),
        ],
    )
    def test_formats(self, test_client: TestClient, sample_poam, helpers, export_format, media_type, filename):
        """Test each format sets its media type and download name."""
        response = test_client.post(
            "/api/v1/export",
            files={"file": helpers.upload(sample_poam, "poam.json")},
            data={"export_format": export_format},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(media_type)
        assert response.headers["content-disposition"] == f'attachment; filename="{filename}"'

    def test_default_is_json(self, test_client: TestClient, sample_catalog, helpers):
        """Test JSON is used when no format is given."""
        response = test_client.post(
            "/api/v1/export",
            files={"file": helpers.upload(sample_catalog, "catalog.json")},
        )

        assert response.status_code == 200
        assert json.loads(response.text)["catalog"]["metadata"]["title"] == "Sample Catalog"

    def test_xml_to_markdown(self, test_client: TestClient, sample_catalog_xml, helpers):
        """Test an XML upload exports with parameters substituted."""
        response = test_client.post(
            "/api/v1/export",
            files={"file": helpers.upload(sample_catalog_xml, "catalog.xml", "application/xml")},
            data={"export_format": "markdown"},
        )

        assert response.status_code == 200
        assert "Review the policy frequency." in response.text

    def test_unknown_format(self, test_client: TestClient, sample_catalog, helpers):
        """Test an unsupported format fails request validation."""
        response = test_client.post(
            "/api/v1/export",
            files={"file": helpers.upload(sample_catalog, "catalog.json")},
            data={"export_format": "pdf"},
        )

        assert response.status_code == 422
