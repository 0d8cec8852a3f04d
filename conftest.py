"""
Repository-level pytest configuration.

No secrets embedded. Live UI tests stay off unless `run.live` is enabled in
config/config.yaml or RUN_LIVE=true is exported; real credentials come from
the environment (APP_USERNAME / APP_PASSWORD) or the CI secret store.
"""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent
