"""Shared test fixtures for the urlreader test suite."""

from __future__ import annotations

import pytest

from urlreader.config import Settings


@pytest.fixture()
def settings() -> Settings:
    """Settings with short timeouts so failing tests fail fast."""
    return Settings(fetcher={"timeout_seconds": 2.0})
