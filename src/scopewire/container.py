from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Mapping
from typing import Any

from typing_extensions import Self

from scopewire.defaults import DEFAULT_STRICT
from scopewire.exceptions import RegistrationError
from scopewire.providers import HostProvider, open_host
from scopewire.registrations import Lifetime, Registration, RegistrationStore, validate_name

logger = logging.getLogger(__name__)


class Container:
    """Persistent builder of service registrations.

    A container is never mutated: ``register`` and its shorthands return a new
    container holding the previous registrations plus the new ones, so a base
    container can be extended in several directions::

        base = Container().singleton(settings=Settings)
        web = base.scoped(request_context=RequestContext)
        worker = base.transient(job=Job)

    Registered values are classified once, at registration time:

    * classes are constructed with the capability view of their provider;
    * other callables are called with the capability view; coroutine
      functions make the service async;
    * anything else is used as-is.

    Wrap a value with ``as_class``, ``as_factory`` or ``as_value`` to override
    the classification.

    ``prepare()`` turns the registrations into a ``HostProvider``.
    """

    __slots__ = ("_store", "_strict")

    def __init__(
        self,
        *,
        strict: bool = DEFAULT_STRICT,
        registrations: RegistrationStore | None = None,
    ) -> None:
        self._strict = strict
        self._store = registrations if registrations is not None else RegistrationStore()

    @classmethod
    def create(cls, *, strict: bool = DEFAULT_STRICT) -> Self:
        """Create an empty container.

        Args:
            strict: Default strictness of the providers this container
                prepares. Strict providers raise where lenient ones read
                ``None`` or ignore the operation.

        """
        return cls(strict=strict)

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def registrations(self) -> RegistrationStore:
        """Read-only mapping of service name to registration, in registration order."""
        return self._store

    def register(
        self,
        lifetime: Lifetime | str,
        registrations: Mapping[str, Any] | None = None,
        /,
        **named: Any,
    ) -> Self:
        """Register services under one lifetime.

        Args:
            lifetime: ``Lifetime`` member or its value (``"singleton"``,
                ``"scoped"``, ``"transient"``).
            registrations: Optional mapping of service name to class, factory
                or value. Use it for names that cannot be keyword arguments.
            **named: Service name to class, factory or value.

        Returns:
            A new container with the registrations added. A name that was
            registered before is replaced but keeps its position.

        Raises:
            RegistrationError: If the lifetime is unknown, a name is given
                twice, a name is not usable as a provider attribute, or an
                explicit ``as_class``/``as_factory`` tag does not match its
                target.

        """
        resolved_lifetime = _coerce_lifetime(lifetime)
        entries: dict[str, Registration] = {}
        for source in (registrations or {}, named):
            for name, target in source.items():
                if name in entries:
                    msg = f"Service '{name}' is registered more than once in the same call."
                    raise RegistrationError(msg, name=name)
                validate_name(name)
                entries[name] = Registration.create(name, resolved_lifetime, target)

        logger.debug(
            "Registered %d %s service(s): %s",
            len(entries),
            resolved_lifetime.value,
            ", ".join(entries),
        )
        return type(self)(strict=self._strict, registrations=self._store.merge(entries))

    def singleton(self, registrations: Mapping[str, Any] | None = None, /, **named: Any) -> Self:
        """Register services shared by the host provider and all of its scopes."""
        return self.register(Lifetime.SINGLETON, registrations, **named)

    def scoped(self, registrations: Mapping[str, Any] | None = None, /, **named: Any) -> Self:
        """Register services created once per scope."""
        return self.register(Lifetime.SCOPED, registrations, **named)

    def transient(self, registrations: Mapping[str, Any] | None = None, /, **named: Any) -> Self:
        """Register services created anew on every access."""
        return self.register(Lifetime.TRANSIENT, registrations, **named)

    def prepare(self, *, strict: bool | None = None) -> HostProvider | Awaitable[HostProvider]:
        """Build a host provider from the current registrations.

        Later registrations on this container do not affect the provider.

        Args:
            strict: Overrides the container's strictness for this provider.

        Returns:
            The provider. When any singleton factory is async, an awaitable
            that resolves every async singleton in registration order and
            then yields the provider.

        """
        strict = self._strict if strict is None else strict
        logger.info(
            "Preparing provider for %d registration(s) (strict=%s)",
            len(self._store),
            strict,
        )
        return open_host(self._store, strict=strict)

    async def aprepare(self, *, strict: bool | None = None) -> HostProvider:
        """Build a host provider, always as an awaitable."""
        provider = self.prepare(strict=strict)
        if inspect.isawaitable(provider):
            return await provider
        return provider

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return name in self._store

    def __repr__(self) -> str:
        return f"Container(strict={self._strict}, registrations={self._store!r})"


def _coerce_lifetime(lifetime: Lifetime | str) -> Lifetime:
    try:
        return Lifetime(lifetime)
    except ValueError:
        msg = f"Invalid lifetime {lifetime!r}; expected one of: " + ", ".join(
            member.value for member in Lifetime
        )
        raise RegistrationError(msg) from None
