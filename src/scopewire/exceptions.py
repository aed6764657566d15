from __future__ import annotations

from collections.abc import Awaitable
from traceback import StackSummary


class ScopewireError(Exception):
    """Represent a base class for all scopewire-specific failures.

    Catch this type when you want to handle any scopewire error path without
    matching each concrete exception class individually.
    """


class RegistrationError(ScopewireError):
    """Signal a malformed registration.

    Raised by ``Container.register`` and its ``singleton``/``scoped``/``transient``
    shorthands as soon as the registration call is made, never later at
    ``prepare()`` time.

    Typical fixes include using a valid ``Lifetime``, choosing service names
    that are plain identifiers not reserved by the providers, and listing each
    name once per call.
    """

    def __init__(self, message: str, *, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class UnregisteredServiceError(ScopewireError):
    """Signal a lookup of a name that has no registration.

    Raised only in strict mode; lenient providers return ``None`` instead.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Service '{name}' is not registered.")
        self.name = name


class ScopedAccessViolationError(ScopewireError):
    """Signal access to a scoped service outside of a scope.

    Raised in strict mode when a scoped name is read from the host provider or
    from the capability view of a singleton or transient factory.

    Typical fix is creating a scope with ``provider.create_scope()`` and
    resolving the service there, or changing the consumer's lifetime to scoped.
    """

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Scoped service '{name}' can only be resolved from a scoped provider.",
        )
        self.name = name


class DisposedProviderAccessError(ScopewireError):
    """Signal use of a provider, or of a reference it handed out, after disposal."""

    def __init__(self, name: str | None = None) -> None:
        if name is None:
            message = "Cannot use a provider after it has been disposed."
        else:
            message = f"Cannot resolve '{name}': its provider has been disposed."
        super().__init__(message)
        self.name = name


class CircularDependencyError(ScopewireError):
    """Signal re-entrant resolution of a service that is still being constructed.

    This typically occurs when two services read each other's members inside
    their constructors. Holding a reference is always fine; only dereferencing
    it before the consumer's own construction has finished is not::

        class A:
            def __init__(self, services):
                self.b = services.b  # fine, nothing is resolved yet

        class B:
            def __init__(self, services):
                self.value = services.a.value  # resolves ``a`` eagerly

    Attributes:
        name: The service whose re-entrant resolution triggered the fault.
        stack: Stack snapshot taken when ``name`` started resolving.
        path: Names that were in progress, in resolution order.

    """

    def __init__(
        self,
        name: str,
        *,
        stack: StackSummary | None = None,
        path: tuple[str, ...] = (),
    ) -> None:
        chain = " -> ".join((*path, name)) if path else name
        super().__init__(f"Cannot resolve circular dependency (Origin: {name}; path: {chain})")
        self.name = name
        self.stack = stack if stack is not None else StackSummary()
        self.path = path


class StrictModeViolationError(ScopewireError):
    """Signal an operation that strict mode forbids.

    Lenient providers silently ignore these operations (or read them as
    ``None``); strict providers raise this error instead.
    """

    def __init__(self, message: str, *, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class AsyncDependencyInSyncContextError(ScopewireError):
    """Signal synchronous handling of something that must be awaited.

    Raised when an async factory that has not settled yet is resolved
    synchronously, and when a provider whose services have async teardown
    hooks is closed with a plain ``with`` block inside a running event loop.
    In the latter case the teardown that could not run is kept in ``pending``
    and still has to be awaited.
    Async singletons are settled by awaiting ``Container.prepare()``, async
    scoped services by awaiting ``HostProvider.create_scope()``.

    Typical fix is awaiting the provider/scope before using it, registering
    async services before the services that read them during construction, or
    switching to ``async with``.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        message: str | None = None,
        pending: Awaitable[None] | None = None,
    ) -> None:
        if message is None:
            message = f"Service '{name}' has an async factory and cannot be resolved synchronously."
        super().__init__(message)
        self.name = name
        self.pending = pending
