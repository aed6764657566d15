from __future__ import annotations

from typing import Any

import pytest

from scopewire import Container, HostProvider

pytest_plugins = ["scopewire.integrations.pytest_plugin"]


class _Clock:
    def __init__(self) -> None:
        self.closed = False

    def now(self) -> int:
        return 42

    def close(self) -> None:
        self.closed = True


_clocks: list[Any] = []


def _make_clock() -> _Clock:
    clock = _Clock()
    _clocks.append(clock)
    return clock


@pytest.fixture()
def scopewire_container() -> Container:
    return Container().singleton(clock=_make_clock).transient(greeting=lambda: "hello")


def test_provider_fixture_prepares_overridden_container(scopewire_provider: HostProvider) -> None:
    assert scopewire_provider.clock.now() == 42
    assert str(scopewire_provider.greeting) == "hello"


def test_previous_provider_was_disposed() -> None:
    assert _clocks
    assert all(clock.closed for clock in _clocks)


class TestDefaultContainer:
    @pytest.fixture()
    def scopewire_container(self) -> Container:
        return Container(strict=True)

    def test_override_per_class(self, scopewire_provider: HostProvider) -> None:
        assert scopewire_provider.strict is True
        assert list(scopewire_provider) == []
