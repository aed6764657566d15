"""Tests for async factories, async preparation and async scopes."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

import pytest

from scopewire import (
    AsyncDependencyInSyncContextError,
    Container,
    HostProvider,
    ScopedProvider,
)


class Pool:
    def __init__(self, name: str) -> None:
        self.name = name
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


def recording_factory(order: list[str], name: str) -> Any:
    async def factory(services: Any) -> Pool:
        order.append(name)
        return Pool(name)

    return factory


def yielding_factory(order: list[str], name: str) -> Any:
    async def factory(services: Any) -> Pool:
        order.append(name)
        await asyncio.sleep(0)
        return Pool(name)

    return factory


class TestAsyncSingletons:
    async def test_prepare_returns_awaitable(self, container: Container) -> None:
        pending = container.singleton(pool=recording_factory([], "pool")).prepare()

        assert inspect.isawaitable(pending)
        provider = await pending

        assert isinstance(provider, HostProvider)
        assert provider.pool.name == "pool"

    async def test_async_singletons_settle_in_registration_order(self, container: Container) -> None:
        order: list[str] = []
        registered = container.singleton(
            second=recording_factory(order, "second"),
            first=recording_factory(order, "first"),
        )

        await registered.aprepare()

        assert order == ["second", "first"]

    async def test_sync_singletons_stay_lazy(self, container: Container) -> None:
        calls: list[str] = []
        provider = await container.singleton(
            pool=recording_factory([], "pool"),
            lazy=lambda: calls.append("lazy"),
        ).aprepare()

        assert calls == []
        provider.lazy  # noqa: B018
        assert calls == ["lazy"]

    async def test_async_singleton_shared_with_scopes(self, container: Container) -> None:
        provider = await container.singleton(pool=recording_factory([], "pool")).aprepare()
        scope = await provider.acreate_scope()

        assert scope.pool is provider.pool

    async def test_async_singleton_may_read_earlier_async_singleton(self, container: Container) -> None:
        async def make_client(services: Any) -> str:
            return f"client of {services.pool.name}"

        provider = await container.singleton(
            pool=recording_factory([], "pool"),
            client=make_client,
        ).aprepare()

        assert str(provider.client) == "client of pool"

    async def test_failing_async_factory_rejects_prepare(self, container: Container) -> None:
        async def broken(services: Any) -> None:
            msg = "cannot connect"
            raise ConnectionError(msg)

        with pytest.raises(ConnectionError, match="cannot connect"):
            await container.singleton(pool=broken).aprepare()

    async def test_sync_reader_of_later_async_singleton_raises(self, container: Container) -> None:
        async def make_pool(services: Any) -> Pool:
            services.reader.value  # noqa: B018
            return Pool("pool")

        class Reader:
            def __init__(self, services: Any) -> None:
                self.value = services.late.name

        async def make_late(services: Any) -> Pool:
            return Pool("late")

        with pytest.raises(AsyncDependencyInSyncContextError) as exc_info:
            await container.singleton(
                pool=make_pool,
                reader=Reader,
                late=make_late,
            ).aprepare()

        assert exc_info.value.name == "late"


class TestAsyncScoped:
    async def test_create_scope_returns_awaitable(self, container: Container) -> None:
        provider = container.scoped(session=recording_factory([], "session")).prepare()
        assert isinstance(provider, HostProvider)

        pending = provider.create_scope()

        assert inspect.isawaitable(pending)
        scope = await pending
        assert isinstance(scope, ScopedProvider)
        assert scope.session.name == "session"

    async def test_each_scope_settles_its_own_instance(self, container: Container) -> None:
        order: list[str] = []
        provider = container.scoped(session=recording_factory(order, "session")).prepare()
        assert isinstance(provider, HostProvider)

        first = await provider.acreate_scope()
        second = await provider.acreate_scope()

        assert order == ["session", "session"]
        assert first.session is not second.session

    async def test_acreate_scope_without_async_factories(self, container: Container) -> None:
        provider = container.scoped(value=1).prepare()
        assert isinstance(provider, HostProvider)

        scope = await provider.acreate_scope()

        assert scope.value == 1


class TestAsyncTransient:
    async def test_access_returns_awaitable_each_time(self, container: Container) -> None:
        order: list[str] = []
        provider = container.transient(pool=recording_factory(order, "pool")).prepare()
        assert isinstance(provider, HostProvider)

        pending = provider.pool
        assert inspect.isawaitable(pending)
        assert order == []

        first = await pending
        second = await provider.pool

        assert isinstance(first, Pool)
        assert first is not second
        assert order == ["pool", "pool"]

    async def test_gathered_accesses_resolve_independently(self, container: Container) -> None:
        order: list[str] = []
        provider = container.transient(pool=yielding_factory(order, "pool")).prepare()
        assert isinstance(provider, HostProvider)

        first, second = await asyncio.gather(provider.pool, provider.pool)

        assert isinstance(first, Pool)
        assert isinstance(second, Pool)
        assert first is not second
        assert order == ["pool", "pool"]

    async def test_gathered_accesses_through_scope(self, container: Container) -> None:
        order: list[str] = []
        provider = container.transient(pool=yielding_factory(order, "pool")).prepare()
        assert isinstance(provider, HostProvider)
        scope = await provider.acreate_scope()

        pools = await asyncio.gather(scope.pool, scope.pool, scope.pool)

        assert len({id(pool) for pool in pools}) == 3
        assert order == ["pool", "pool", "pool"]
