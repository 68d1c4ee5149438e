"""Test bootstrap for mock-runtime."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import structlog

APP_ROOT = Path(__file__).resolve().parents[1]

app_root = str(APP_ROOT)
if app_root not in sys.path:
    sys.path.insert(0, app_root)


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
