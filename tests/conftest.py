# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import sitepatch  # noqa: F401
except ImportError:
    raise ImportError("sitepatch is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from sitepatch.config import EngineSettings, get_settings
from tests._site_helpers import NAV_ABOUT, NAV_HOME, page


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """get_settings() reads the environment once; tests may change it."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def two_page_site() -> dict[str, str]:
    return {
        "index.html": page(NAV_HOME + "<main><h1>Welcome</h1></main>", "Home"),
        "about.html": page(NAV_ABOUT + "<main><h1>About us</h1></main>", "About"),
        "styles.css": "body { margin: 0; }",
    }
