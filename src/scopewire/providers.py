from __future__ import annotations

import functools
import inspect
import logging
import types
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterator
from typing import Any

from typing_extensions import Self

from scopewire.cells import LazyCell
from scopewire.disposal import Teardown, complete_sync
from scopewire.exceptions import (
    DisposedProviderAccessError,
    ScopedAccessViolationError,
    ScopewireError,
    StrictModeViolationError,
    UnregisteredServiceError,
)
from scopewire.references import TransientReference
from scopewire.registrations import FactoryKind, Lifetime, Registration, RegistrationStore
from scopewire.resolution_stack import ResolutionTracker
from scopewire.views import CapabilityView

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Shared resolution surface of host and scoped providers.

    Registered services are read as attributes (``provider.database``), as
    items (``provider["database"]``) or through ``resolve``. Singleton and
    scoped services come back as ``LazyReference`` handles, transient ones as
    ``TransientReference`` handles (or awaitables for async factories) and
    constant values as-is.
    """

    __slots__ = ("_cells", "_disposed", "_registrations", "_strict", "_tracker")

    def __init__(self, registrations: RegistrationStore, *, strict: bool) -> None:
        self._registrations = registrations
        self._strict = strict
        self._disposed = False
        self._tracker = ResolutionTracker()
        self._cells: dict[str, LazyCell] = {}

    @property
    def strict(self) -> bool:
        """Whether violations raise instead of reading as ``None``."""
        return self._strict

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def registrations(self) -> RegistrationStore:
        return self._registrations

    def resolve(self, name: str) -> Any:
        """Resolve ``name``; same as ``getattr(provider, name)``."""
        return self._lookup(name, resolve=True)

    @abstractmethod
    def dispose(self) -> Awaitable[None] | None:
        """Release resolved instances and run their teardown hooks."""

    async def adispose(self) -> None:
        """Dispose the provider and wait for any asynchronous teardown."""
        result = self.dispose()
        if result is not None:
            await result

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._lookup(name, resolve=True)

    def __getitem__(self, name: str) -> Any:
        return self._lookup(name, resolve=True)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
            return
        self._assign(name, value)

    def __setitem__(self, name: str, value: Any) -> None:
        self._assign(name, value)

    def __contains__(self, name: object) -> bool:
        registration = self._registrations.get(name)  # type: ignore[call-overload]
        return registration is not None and self._is_visible(registration)

    def __iter__(self) -> Iterator[str]:
        return (
            name
            for name, registration in self._registrations.items()
            if self._is_visible(registration)
        )

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *self})

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        complete_sync(self.dispose())

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.adispose()

    @abstractmethod
    def _is_visible(self, registration: Registration) -> bool: ...

    @abstractmethod
    def _lookup(self, name: str, *, resolve: bool) -> Any: ...

    @abstractmethod
    def _assign(self, name: str, value: Any) -> None: ...

    def _ensure_active(self) -> None:
        if self._disposed:
            raise DisposedProviderAccessError

    def _deny(self, error: ScopewireError) -> None:
        """Raise ``error`` in strict mode, otherwise read as ``None``."""
        if self._strict:
            raise error
        logger.debug("Lenient provider ignored: %s", error)

    def _view_for(self, registration: Registration) -> CapabilityView:
        return CapabilityView(self, registration.name)

    def _create_cells(self, lifetime: Lifetime) -> None:
        for registration in self._registrations.by_lifetime(lifetime):
            self._cells[registration.name] = LazyCell(registration, self._tracker, self._view_for)

    def _read(self, cell: LazyCell, *, resolve: bool) -> Any:
        if cell.registration.kind is FactoryKind.VALUE:
            return cell.resolve()
        if resolve:
            cell.resolve()
        return cell.reference

    def _override(self, cell: LazyCell, value: Any) -> None:
        if self._strict:
            msg = (
                f"{cell.registration.lifetime.value.capitalize()} registrations cannot be "
                "edited while strict mode is enabled."
            )
            raise StrictModeViolationError(msg, name=cell.name)
        logger.debug("Overriding %s service %r", cell.registration.lifetime.value, cell.name)
        cell.override(value)

    async def _settle(self, lifetime: Lifetime) -> Self:
        """Resolve every async ``lifetime`` service, in registration order."""
        for cell in self._cells.values():
            if cell.registration.lifetime is lifetime and cell.registration.is_async:
                logger.debug("Settling async %s service %r", lifetime.value, cell.name)
                await cell.aresolve()
        return self

    def _release_cells(self) -> Teardown:
        teardown = Teardown()
        for cell in self._cells.values():
            teardown.add_instance(cell.release())
        self._cells.clear()
        return teardown


class HostProvider(BaseProvider):
    """Root provider covering singleton and transient services.

    Created by ``Container.prepare()``. Scoped services are only reachable
    through the ``ScopedProvider`` objects returned by ``create_scope``; on
    the host they read as ``None`` (lenient) or raise
    ``ScopedAccessViolationError`` (strict).

    Disposing the host tears down every resolved singleton in registration
    order, then disposes every scope it created that is still live.
    """

    __slots__ = ("_scopes",)

    def __init__(self, registrations: RegistrationStore, *, strict: bool) -> None:
        super().__init__(registrations, strict=strict)
        self._scopes: list[ScopedProvider] = []
        self._create_cells(Lifetime.SINGLETON)

    def create_scope(self) -> ScopedProvider | Awaitable[ScopedProvider]:
        """Create a scope sharing this provider's singletons.

        Returns:
            The new scope, or an awaitable of it when any scoped factory is
            async. Awaiting it resolves the async scoped services in
            registration order.

        Raises:
            DisposedProviderAccessError: If this provider was disposed.

        """
        self._ensure_active()
        scope = ScopedProvider(self)
        self._scopes.append(scope)
        logger.debug("Created scope #%d", len(self._scopes))
        if self._registrations.has_async(Lifetime.SCOPED):
            return scope._settle(Lifetime.SCOPED)  # noqa: SLF001
        return scope

    async def acreate_scope(self) -> ScopedProvider:
        """Create a scope, always as an awaitable."""
        scope = self.create_scope()
        if inspect.isawaitable(scope):
            return await scope
        return scope

    def dispose(self) -> Awaitable[None] | None:
        """Dispose singletons and every live scope.

        Calling it again is a no-op.

        Returns:
            ``None`` when all teardown hooks were synchronous, otherwise an
            awaitable completing once every asynchronous hook has completed.

        """
        if self._disposed:
            return None
        self._disposed = True
        teardown = self._release_cells()
        scopes, self._scopes = self._scopes, []
        for scope in scopes:
            teardown.add_step(scope.dispose)
        logger.debug("Disposing host provider: %d teardown step(s)", len(teardown))
        return teardown.run()

    def _forget_scope(self, scope: ScopedProvider) -> None:
        if scope in self._scopes:
            self._scopes.remove(scope)

    def _is_visible(self, registration: Registration) -> bool:
        return registration.lifetime is not Lifetime.SCOPED

    def _lookup(self, name: str, *, resolve: bool) -> Any:
        self._ensure_active()
        registration = self._registrations.get(name)
        if registration is None:
            return self._deny(UnregisteredServiceError(name))
        if registration.lifetime is Lifetime.SCOPED:
            return self._deny(ScopedAccessViolationError(name))
        if registration.lifetime is Lifetime.TRANSIENT:
            return self._transient(registration)
        return self._read(self._cells[name], resolve=resolve)

    def _assign(self, name: str, value: Any) -> None:
        self._ensure_active()
        registration = self._registrations.get(name)
        if registration is None or registration.lifetime is Lifetime.TRANSIENT:
            logger.debug("Ignoring assignment of unregistered or transient service %r", name)
            return
        if registration.lifetime is Lifetime.SCOPED:
            self._deny(ScopedAccessViolationError(name))
            return
        self._override(self._cells[name], value)

    def _transient(self, registration: Registration) -> Any:
        if registration.kind is FactoryKind.VALUE:
            return registration.target
        if registration.is_async:
            return self._produce_async(registration)
        return TransientReference(
            registration.name,
            functools.partial(self._produce, registration),
            strict=self._strict,
        )

    def _produce(self, registration: Registration) -> Any:
        self._ensure_active()
        with self._tracker.track(registration.name):
            return registration.instantiate(self._view_for(registration))

    async def _produce_async(self, registration: Registration) -> Any:
        self._ensure_active()
        with self._tracker.track(registration.name):
            return await registration.instantiate(self._view_for(registration))

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._scopes)} live scope(s)"
        return f"<HostProvider {len(self._registrations)} registration(s), {state}>"


class ScopedProvider(BaseProvider):
    """Child provider covering scoped services plus inherited singletons and transients.

    Scoped services resolve at most once per scope. Singleton reads go to the
    host, so every scope sees the host's instances. Transient services are
    produced by the host, so transient factories never see scoped services.
    """

    __slots__ = ("_host",)

    def __init__(self, host: HostProvider) -> None:
        super().__init__(host.registrations, strict=host.strict)
        self._host = host
        self._create_cells(Lifetime.SCOPED)

    @property
    def host(self) -> HostProvider:
        return self._host

    def dispose(self) -> Awaitable[None] | None:
        """Dispose this scope's resolved scoped services.

        Singletons are left to the host. Calling it again is a no-op.

        Returns:
            ``None`` when all teardown hooks were synchronous, otherwise an
            awaitable completing once every asynchronous hook has completed.

        """
        if self._disposed:
            return None
        self._disposed = True
        teardown = self._release_cells()
        self._host._forget_scope(self)  # noqa: SLF001
        logger.debug("Disposing scope: %d teardown step(s)", len(teardown))
        return teardown.run()

    def _is_visible(self, registration: Registration) -> bool:
        return True

    def _lookup(self, name: str, *, resolve: bool) -> Any:
        self._ensure_active()
        registration = self._registrations.get(name)
        if registration is None:
            return self._deny(UnregisteredServiceError(name))
        if registration.lifetime is Lifetime.SINGLETON:
            return self._host._lookup(name, resolve=resolve)  # noqa: SLF001
        if registration.lifetime is Lifetime.TRANSIENT:
            return self._host._transient(registration)  # noqa: SLF001
        return self._read(self._cells[name], resolve=resolve)

    def _assign(self, name: str, value: Any) -> None:
        self._ensure_active()
        registration = self._registrations.get(name)
        if registration is None or registration.lifetime is Lifetime.TRANSIENT:
            logger.debug("Ignoring assignment of unregistered or transient service %r", name)
            return
        if registration.lifetime is Lifetime.SINGLETON:
            self._host._assign(name, value)  # noqa: SLF001
            return
        self._override(self._cells[name], value)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._cells)} scoped service(s)"
        return f"<ScopedProvider {state}>"


def open_host(
    registrations: RegistrationStore,
    *,
    strict: bool,
) -> HostProvider | Awaitable[HostProvider]:
    """Build a host provider over ``registrations``.

    Returns:
        The provider, or an awaitable of it when any singleton factory is
        async. Awaiting it resolves the async singletons in registration order.

    """
    provider = HostProvider(registrations, strict=strict)
    if registrations.has_async(Lifetime.SINGLETON):
        return provider._settle(Lifetime.SINGLETON)  # noqa: SLF001
    return provider
