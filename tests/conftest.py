"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

from fake_repository import FakeRepository  # noqa: E402


@pytest.fixture
def source() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def target() -> FakeRepository:
    return FakeRepository()


@pytest.fixture(autouse=True)
def _clear_projectxfer_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep a developer's PROJECTXFER_* settings from leaking into tests.
    for key in (
        "PROJECTXFER_SOURCE_URL",
        "PROJECTXFER_SOURCE_USER",
        "PROJECTXFER_SOURCE_PASSWORD",
        "PROJECTXFER_TARGET_URL",
        "PROJECTXFER_TARGET_USER",
        "PROJECTXFER_TARGET_PASSWORD",
        "PROJECTXFER_EXPORT_DIR",
        "PROJECTXFER_HTTP_TIMEOUT",
        "PROJECTXFER_VERIFY_TLS",
    ):
        monkeypatch.delenv(key, raising=False)
