"""
Test package for the OSCAL Workbench API.

Test Organization:
- unit/: Unit tests for individual services and models
- integration/: Integration tests for API endpoints
- conftest.py: Pytest configuration and fixtures

Usage:
    # Run all tests
    python -m pytest

    # Run specific test categories
    python -m pytest -m unit
    python -m pytest -m integration
"""

__version__ = "0.1.0"

# Test markers for categorizing tests
MARKERS = {
    "unit": "Unit tests for individual components",
    "integration": "Integration tests for API endpoints",
    "oscal": "Tests related to OSCAL document handling",
}


def pytest_configure(config):
    """Configure pytest with custom markers."""
    for marker, description in MARKERS.items():
        config.addinivalue_line("markers", f"{marker}: {description}")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on path."""
    import pytest

    for item in items:
        path = str(item.fspath).replace("\\", "/")

        # Add unit marker for tests in unit/ directory
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)

        # Add integration marker for tests in integration/ directory
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)

        # Add OSCAL marker for document-handling tests
        if any(keyword in path.lower() for keyword in ["parser", "xml", "resolver", "differ", "export"]):
            item.add_marker(pytest.mark.oscal)
