"""
================================================================================
Root Pytest Configuration
================================================================================

Registers project-wide markers and tags collected tests by suite.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests simulating user flows"
    )
    config.addinivalue_line(
        "markers", "manual: Needs a person (e.g. e-mailed verification code)"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "ui: Live UI tests against a Salesforce org"
    )
    config.addinivalue_line(
        "markers", "unit: Offline framework tests"
    )


def pytest_collection_modifyitems(config, items):
    """Tag tests with their suite marker based on location."""
    for item in items:
        path = str(item.fspath)
        if "ui_testing" in path:
            item.add_marker(pytest.mark.ui)
        elif "unit" in path:
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Salesflow UI Regression Suite",
        "=" * 60,
        "",
    ]
