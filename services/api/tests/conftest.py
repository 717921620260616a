"""
Test configuration and fixtures for the OSCAL Workbench API.

Provides sample OSCAL documents, a resolution service backed by an
in-memory HTTP transport, and a FastAPI test client.
"""

import json
from typing import Any, Callable, Dict, Generator, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from oscal_workbench.core.logging import configure_test_logging
from oscal_workbench.main import app
from oscal_workbench.services.document_cache import DocumentCache
from oscal_workbench.services.resolver import ResolutionService, get_resolution_service
from tests import pytest_collection_modifyitems, pytest_configure  # noqa: F401

CATALOG_URL = "https://example.com/catalogs/catalog.json"
PROFILE_URL = "https://example.com/profiles/profile.json"

RemoteEntry = Union[str, int, Exception]


def _metadata(title: str) -> Dict[str, Any]:
    return {
        "title": title,
        "last-modified": "2024-01-15T10:30:00Z",
        "version": "1.0",
        "oscal-version": "1.1.2",
    }


@pytest.fixture
def sample_catalog() -> Dict[str, Any]:
    """Catalog with two groups, four controls (one enhancement) and one parameter."""
    return {
        "catalog": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000001",
            "metadata": _metadata("Sample Catalog"),
            "groups": [
                {
                    "id": "ac",
                    "class": "family",
                    "title": "Access Control",
                    "controls": [
                        {
                            "id": "ac-1",
                            "class": "SP800-53",
                            "title": "Policy and Procedures",
                            "params": [
                                {"id": "ac-01_odp.01", "label": "frequency"}
                            ],
                            "parts": [
                                {
                                    "id": "ac-1_smt",
                                    "name": "statement",
                                    "prose": "Review the policy {{ insert: param, ac-01_odp.01 }}.",
                                },
                                {
                                    "id": "ac-1_gdn",
                                    "name": "guidance",
                                    "prose": "Policies address purpose and scope.",
                                },
                            ],
                        },
                        {
                            "id": "ac-2",
                            "class": "SP800-53",
                            "title": "Account Management",
                            "parts": [
                                {
                                    "id": "ac-2_smt",
                                    "name": "statement",
                                    "prose": "Manage system accounts.",
                                }
                            ],
                            "controls": [
                                {
                                    "id": "ac-2.1",
                                    "class": "SP800-53-enhancement",
                                    "title": "Automated System Account Management",
                                }
                            ],
                        },
                    ],
                },
                {
                    "id": "sc",
                    "class": "family",
                    "title": "System and Communications Protection",
                    "controls": [
                        {"id": "sc-7", "class": "SP800-53", "title": "Boundary Protection"}
                    ],
                },
            ],
        }
    }


@pytest.fixture
def sample_profile() -> Dict[str, Any]:
    """Profile selecting ac-1 and ac-2 from the sample catalog."""
    return {
        "profile": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000002",
            "metadata": _metadata("Sample Baseline"),
            "imports": [
                {
                    "href": CATALOG_URL,
                    "include-controls": [{"with-ids": ["ac-1", "ac-2"]}],
                }
            ],
            "merge": {"as-is": True},
            "modify": {
                "set-parameters": [
                    {"param-id": "ac-01_odp.01", "values": ["annually"]}
                ],
                "alters": [
                    {
                        "control-id": "ac-1",
                        "removes": [{"by-name": "guidance"}],
                        "adds": [
                            {
                                "position": "ending",
                                "parts": [{"name": "assessment", "prose": "Examine the policy."}],
                            }
                        ],
                    }
                ],
            },
        }
    }


@pytest.fixture
def sample_ssp() -> Dict[str, Any]:
    """Sample OSCAL SSP importing the sample profile."""
    return {
        "system-security-plan": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000003",
            "metadata": {
                **_metadata("Test System Security Plan"),
                "roles": [
                    {"id": "system-owner", "title": "System Owner"},
                    {"id": "isso", "title": "Information System Security Officer"},
                ],
                "parties": [
                    {
                        "uuid": "7b3c1a50-0000-4000-8000-0000000000a1",
                        "type": "organization",
                        "name": "Test Organization",
                    }
                ],
            },
            "import-profile": {"href": PROFILE_URL},
            "system-characteristics": {
                "system-name": "Test Information System",
                "description": "Test system for workbench testing.",
                "status": {"state": "operational"},
            },
            "system-implementation": {
                "components": [
                    {
                        "uuid": "7b3c1a50-0000-4000-8000-0000000000b1",
                        "type": "software",
                        "title": "Test Application Server",
                        "description": "Primary application server",
                        "status": {"state": "operational"},
                    }
                ]
            },
            "control-implementation": {
                "description": "Control implementation for the test system.",
                "implemented-requirements": [
                    {
                        "uuid": "7b3c1a50-0000-4000-8000-0000000000c1",
                        "control-id": "ac-1",
                        "responsible-roles": [{"role-id": "system-owner"}],
                        "by-components": [
                            {
                                "component-uuid": "7b3c1a50-0000-4000-8000-0000000000b1",
                                "uuid": "7b3c1a50-0000-4000-8000-0000000000d1",
                                "description": "Policy maintained in the wiki",
                                "implementation-status": {"state": "implemented"},
                            }
                        ],
                    },
                    {
                        "uuid": "7b3c1a50-0000-4000-8000-0000000000c2",
                        "control-id": "ac-2",
                        "remarks": "Accounts managed centrally",
                    },
                ],
            },
        }
    }


@pytest.fixture
def sample_component_definition() -> Dict[str, Any]:
    return {
        "component-definition": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000004",
            "metadata": _metadata("Sample Components"),
            "components": [
                {
                    "uuid": "7b3c1a50-0000-4000-8000-0000000000e1",
                    "type": "software",
                    "title": "Identity Provider",
                    "description": "Central identity provider",
                    "control-implementations": [
                        {
                            "uuid": "7b3c1a50-0000-4000-8000-0000000000e2",
                            "source": CATALOG_URL,
                            "description": "Access control coverage",
                            "implemented-requirements": [
                                {
                                    "uuid": "7b3c1a50-0000-4000-8000-0000000000e3",
                                    "control-id": "ac-2",
                                    "description": "Accounts are provisioned through SSO",
                                }
                            ],
                        }
                    ],
                }
            ],
            "capabilities": [
                {
                    "uuid": "7b3c1a50-0000-4000-8000-0000000000e4",
                    "name": "Single Sign-On",
                    "description": "SSO for all applications",
                }
            ],
        }
    }


@pytest.fixture
def sample_assessment_results() -> Dict[str, Any]:
    return {
        "assessment-results": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000005",
            "metadata": _metadata("Sample Assessment Results"),
            "import-ap": {"href": "https://example.com/plans/sap.json"},
            "results": [
                {
                    "uuid": "7b3c1a50-0000-4000-8000-0000000000f1",
                    "title": "Annual Assessment",
                    "description": "Yearly control assessment",
                    "start": "2024-01-01T00:00:00Z",
                    "findings": [
                        {
                            "uuid": "7b3c1a50-0000-4000-8000-0000000000f2",
                            "title": "Account reviews overdue",
                            "description": "Quarterly reviews were not performed",
                            "target": {
                                "type": "objective-id",
                                "target-id": "ac-2_obj",
                                "status": {"state": "not-satisfied"},
                            },
                        }
                    ],
                    "observations": [
                        {
                            "uuid": "7b3c1a50-0000-4000-8000-0000000000f3",
                            "description": "Review logs were empty",
                            "methods": ["EXAMINE"],
                            "collected": "2024-01-10T00:00:00Z",
                        }
                    ],
                    "risks": [
                        {
                            "uuid": "7b3c1a50-0000-4000-8000-0000000000f4",
                            "title": "Stale accounts",
                            "description": "Unused accounts may remain active",
                            "statement": "Stale accounts increase exposure.",
                            "status": "open",
                        }
                    ],
                }
            ],
        }
    }


@pytest.fixture
def sample_poam() -> Dict[str, Any]:
    return {
        "plan-of-action-and-milestones": {
            "uuid": "7b3c1a50-0000-4000-8000-000000000006",
            "metadata": _metadata("Sample POA&M"),
            "poam-items": [
                {
                    "uuid": "7b3c1a50-0000-4000-8000-0000000000g1",
                    "title": "Perform account reviews",
                    "description": "Restart quarterly account reviews",
                    "props": [{"name": "status", "value": "open"}],
                    "milestones": [
                        {
                            "uuid": "7b3c1a50-0000-4000-8000-0000000000g2",
                            "title": "First review complete",
                            "schedule": {"tasks": [{"start": "2024-02-01", "end": "2024-03-31"}]},
                        }
                    ],
                }
            ],
        }
    }


@pytest.fixture
def sample_catalog_xml() -> str:
    """The sample catalog's first group, in OSCAL XML."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<catalog xmlns="http://csrc.nist.gov/ns/oscal/1.0" uuid="7b3c1a50-0000-4000-8000-000000000001">
  <metadata>
    <title>Sample Catalog</title>
    <last-modified>2024-01-15T10:30:00Z</last-modified>
    <version>1.0</version>
    <oscal-version>1.1.2</oscal-version>
  </metadata>
  <group id="ac" class="family">
    <title>Access Control</title>
    <control id="ac-1" class="SP800-53">
      <title>Policy and Procedures</title>
      <param id="ac-01_odp.01">
        <label>frequency</label>
      </param>
      <part id="ac-1_smt" name="statement">
        <p>Review the policy <insert type="param" id-ref="ac-01_odp.01"/>.</p>
      </part>
    </control>
    <control id="ac-2" class="SP800-53">
      <title>Account Management</title>
      <control id="ac-2.1" class="SP800-53-enhancement">
        <title>Automated System Account Management</title>
      </control>
    </control>
  </group>
</catalog>
"""


@pytest.fixture
def remote_documents(sample_catalog, sample_profile) -> Dict[str, RemoteEntry]:
    """URL -> response body, status code, or exception to raise."""
    return {
        CATALOG_URL: json.dumps(sample_catalog),
        PROFILE_URL: json.dumps(sample_profile),
    }


@pytest.fixture
def requested_urls() -> List[str]:
    return []


@pytest.fixture
def mock_transport(remote_documents, requested_urls) -> httpx.MockTransport:
    """In-memory transport serving ``remote_documents``; unknown URLs get 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested_urls.append(url)
        entry = remote_documents.get(url)
        if entry is None:
            return httpx.Response(404)
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, int):
            return httpx.Response(entry)
        return httpx.Response(200, text=entry)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def resolution_service(mock_transport) -> ResolutionService:
    """Resolution service whose HTTP client talks to the mock transport."""
    service = ResolutionService(client=httpx.AsyncClient(transport=mock_transport))
    yield service
    await service.aclose()


@pytest.fixture
def document_cache() -> DocumentCache:
    return DocumentCache()


@pytest.fixture
def test_client(mock_transport) -> Generator[TestClient, None, None]:
    """Create test client whose resolution service uses the mock transport."""
    service = ResolutionService(client=httpx.AsyncClient(transport=mock_transport))

    app.dependency_overrides[get_resolution_service] = lambda: service

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def log_capture():
    """Capture structlog events emitted by loggers created during the test."""
    import structlog

    capture = configure_test_logging()
    yield capture
    structlog.reset_defaults()


class TestHelpers:
    """Test helper utilities."""

    @staticmethod
    def to_json(document: Dict[str, Any]) -> str:
        return json.dumps(document)

    @staticmethod
    def upload(
        document: Union[Dict[str, Any], str],
        filename: str = "document.json",
        content_type: str = "application/json",
    ) -> Tuple[str, str, str]:
        """Build a (filename, content, content type) tuple for multipart uploads."""
        content = document if isinstance(document, str) else json.dumps(document)
        return (filename, content, content_type)

    @staticmethod
    def assert_error_response(response_data: Dict[str, Any], error_code: str) -> None:
        """Assert the standard error body shape."""
        assert response_data["error"] == error_code
        assert "message" in response_data
        assert "details" in response_data


# Make TestHelpers available as a fixture
@pytest.fixture
def helpers() -> Callable:
    """Test helper utilities fixture."""
    return TestHelpers
