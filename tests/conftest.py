"""Shared pytest fixtures for scopewire tests."""

from __future__ import annotations

import itertools

import pytest

from scopewire import Container


@pytest.fixture()
def container() -> Container:
    """Empty lenient container."""
    return Container()


@pytest.fixture()
def strict_container() -> Container:
    """Empty strict container."""
    return Container(strict=True)


@pytest.fixture()
def teardown_log() -> list[str]:
    """Ordered record of teardown hook calls."""
    return []


@pytest.fixture()
def ids() -> itertools.count[int]:
    """Monotonic id source for factories that must produce distinct values."""
    return itertools.count(1)
