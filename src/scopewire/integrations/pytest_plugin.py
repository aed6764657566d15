"""Pytest fixtures for tests that run against a scopewire provider.

Enable it from a test module or ``conftest.py``::

    pytest_plugins = ["scopewire.integrations.pytest_plugin"]

Override ``scopewire_container`` to register the services a test module
needs; ``scopewire_provider`` prepares it and disposes the provider once the
test finishes.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterator

import pytest

from scopewire.container import Container
from scopewire.disposal import complete_sync
from scopewire.exceptions import AsyncDependencyInSyncContextError
from scopewire.providers import HostProvider


@pytest.fixture()
def scopewire_container() -> Container:
    """Create a per-test container.

    The fixture is function-scoped, so registrations are isolated between
    tests unless users override fixture scope explicitly.

    Returns:
        A new, empty ``Container``.

    """
    return Container()


@pytest.fixture()
def scopewire_provider(scopewire_container: Container) -> Iterator[HostProvider]:
    """Prepare ``scopewire_container`` and dispose the provider after the test.

    Yields:
        The prepared ``HostProvider``.

    Raises:
        AsyncDependencyInSyncContextError: If the container has async
            singletons; prepare those with ``await container.aprepare()``
            inside the test instead.

    """
    provider = scopewire_container.prepare()
    if inspect.isawaitable(provider):
        if inspect.iscoroutine(provider):
            provider.close()
        msg = "The container registers async singletons; use 'await container.aprepare()'."
        raise AsyncDependencyInSyncContextError(message=msg)
    try:
        yield provider
    finally:
        complete_sync(provider.dispose())
