"""Tests for scoped providers."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from scopewire import (
    Container,
    DisposedProviderAccessError,
    HostProvider,
    ScopedAccessViolationError,
    ScopedProvider,
    StrictModeViolationError,
)


class Request:
    def __init__(self, services: Any) -> None:
        self.services = services
        self.user = None


class Handler:
    def __init__(self, services: Any) -> None:
        self.request = services.request
        self.counter = services.counter


class Counter:
    def __init__(self) -> None:
        self.count = 0


def _prepare(container: Container) -> HostProvider:
    provider = container.prepare()
    assert isinstance(provider, HostProvider)
    return provider


def _scope(provider: HostProvider) -> ScopedProvider:
    scope = provider.create_scope()
    assert isinstance(scope, ScopedProvider)
    return scope


class TestScopedLifetime:
    def test_distinct_scopes_get_distinct_instances(
        self,
        container: Container,
        ids: itertools.count[int],
    ) -> None:
        provider = _prepare(container.scoped(req=lambda: {"id": next(ids)}))

        first, second = _scope(provider), _scope(provider)

        assert first.req["id"] != second.req["id"]

    def test_same_scope_shares_instance(self, container: Container) -> None:
        scope = _scope(_prepare(container.scoped(request=Request)))

        scope.request.user = "alice"

        assert scope.request is scope.request
        assert scope.request.user == "alice"

    def test_singletons_are_shared_with_scopes(self, container: Container) -> None:
        provider = _prepare(container.singleton(counter=Counter))
        first, second = _scope(provider), _scope(provider)

        first.counter.count += 1
        second.counter.count += 1

        assert provider.counter.count == 2
        assert first.counter is provider.counter
        assert second.counter is provider.counter

    def test_scoped_service_sees_scoped_and_singleton_siblings(self, container: Container) -> None:
        provider = _prepare(
            container.singleton(counter=Counter).scoped(request=Request, handler=Handler),
        )
        scope = _scope(provider)

        assert scope.handler.request is scope.request
        assert scope.handler.counter is provider.counter

    def test_transients_are_available_in_scopes(self, container: Container) -> None:
        scope = _scope(_prepare(container.transient(counter=Counter)))

        assert scope.counter.count == 0

    def test_scope_iterates_every_lifetime(self, container: Container) -> None:
        scope = _scope(_prepare(container.singleton(a=1).scoped(b=2).transient(c=3)))

        assert list(scope) == ["a", "b", "c"]
        assert scope.host is not None


class TestScopedAccessFromHost:
    def test_lenient_host_reads_none(self, container: Container) -> None:
        provider = _prepare(container.scoped(request=Request))

        assert provider.request is None

    def test_strict_host_raises(self, strict_container: Container) -> None:
        provider = _prepare(strict_container.scoped(request=Request))

        with pytest.raises(ScopedAccessViolationError) as exc_info:
            provider.request  # noqa: B018

        assert exc_info.value.name == "request"

    def test_singleton_factory_cannot_see_scoped(self, container: Container) -> None:
        seen: list[Any] = []
        provider = _prepare(
            container.scoped(request=Request).singleton(
                audit=lambda services: seen.append(services.request),
            ),
        )
        scope = _scope(provider)

        scope.audit  # noqa: B018

        assert seen == [None]

    def test_strict_singleton_factory_cannot_see_scoped(self, strict_container: Container) -> None:
        provider = _prepare(
            strict_container.scoped(request=Request).singleton(
                audit=lambda services: services.request,
            ),
        )
        scope = _scope(provider)

        with pytest.raises(ScopedAccessViolationError):
            scope.audit  # noqa: B018

    def test_transient_factory_cannot_see_scoped(self, container: Container) -> None:
        provider = _prepare(
            container.scoped(request=Request).transient(handler=lambda services: [services.request]),
        )
        scope = _scope(provider)

        assert scope.handler[0] is None

    def test_host_rejects_scoped_assignment_in_strict_mode(self, strict_container: Container) -> None:
        provider = _prepare(strict_container.scoped(request=Request))

        with pytest.raises(ScopedAccessViolationError):
            provider.request = Request(None)


class TestScopedSetting:
    def test_lenient_overwrite_is_local_to_scope(self, container: Container) -> None:
        provider = _prepare(container.scoped(request=Request))
        first, second = _scope(provider), _scope(provider)

        first.request = "replacement"

        assert str(first.request) == "replacement"
        assert isinstance(second.request, Request)

    def test_strict_forbids_overwrite(self, strict_container: Container) -> None:
        scope = _scope(_prepare(strict_container.scoped(request=Request)))

        with pytest.raises(StrictModeViolationError):
            scope.request = "replacement"

    def test_singleton_overwrite_through_scope_reaches_host(self, container: Container) -> None:
        provider = _prepare(container.singleton(counter=Counter))
        scope = _scope(provider)

        scope.counter = "replacement"

        assert str(provider.counter) == "replacement"


class TestScopeLifecycle:
    def test_disposed_scope_refuses_access(self, container: Container) -> None:
        provider = _prepare(container.scoped(request=Request))
        scope = _scope(provider)
        request = scope.request
        scope.dispose()

        assert scope.disposed is True
        with pytest.raises(DisposedProviderAccessError):
            scope.request  # noqa: B018
        with pytest.raises(DisposedProviderAccessError):
            request.user  # noqa: B018

    def test_disposing_scope_keeps_singletons(self, container: Container) -> None:
        provider = _prepare(container.singleton(counter=Counter))
        scope = _scope(provider)
        scope.counter.count += 1

        scope.dispose()

        assert provider.counter.count == 1

    def test_create_scope_after_dispose_raises(self, container: Container) -> None:
        provider = _prepare(container)
        provider.dispose()

        with pytest.raises(DisposedProviderAccessError):
            provider.create_scope()

    def test_scope_as_context_manager(self, container: Container) -> None:
        provider = _prepare(container.scoped(request=Request))

        with _scope(provider) as scope:
            scope.request.user = "bob"

        assert scope.disposed is True
        assert repr(scope) == "<ScopedProvider disposed>"

    def test_repr(self, container: Container) -> None:
        scope = _scope(_prepare(container.scoped(a=1, b=2)))

        assert repr(scope) == "<ScopedProvider 2 scoped service(s)>"
