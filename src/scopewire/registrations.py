from __future__ import annotations

import inspect
import keyword
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from scopewire.defaults import RESERVED_NAMES
from scopewire.exceptions import RegistrationError
from scopewire.integrations.pydantic_settings import is_pydantic_settings_subclass

T = TypeVar("T")


class Lifetime(str, Enum):
    """Defines how long a resolved service is retained."""

    SINGLETON = "singleton"
    """A single instance shared by the host provider and every scope it creates."""

    SCOPED = "scoped"
    """Instance is shared within a scope, different instances across scopes."""

    TRANSIENT = "transient"
    """A new instance is created on every access and never stored."""


class FactoryKind(str, Enum):
    """How a registered target turns into an instance."""

    CLASS = "class"
    """Target is a class, constructed with the capability view."""

    FACTORY = "factory"
    """Target is a callable invoked with the capability view."""

    VALUE = "value"
    """Target is used as-is."""


@dataclass(frozen=True, slots=True)
class Provide(Generic[T]):
    """Explicit classification tag for a registration target.

    Build it with ``as_class``, ``as_factory`` or ``as_value`` rather than
    directly.
    """

    kind: FactoryKind
    target: Any


def as_class(target: type[T]) -> Provide[T]:
    """Register ``target`` as a class constructed with the capability view."""
    return Provide(FactoryKind.CLASS, target)


def as_factory(target: Any) -> Provide[Any]:
    """Register ``target`` as a factory called with the capability view."""
    return Provide(FactoryKind.FACTORY, target)


def as_value(target: T) -> Provide[T]:
    """Register ``target`` as a constant, even when it is callable."""
    return Provide(FactoryKind.VALUE, target)


@dataclass(frozen=True, slots=True, kw_only=True)
class Registration:
    """A named, classified service factory with its lifetime."""

    name: str
    lifetime: Lifetime
    kind: FactoryKind
    target: Any
    is_async: bool = False
    """Whether invoking the target produces an awaitable."""
    accepts_view: bool = True
    """Whether the target is invoked with the capability view."""

    @classmethod
    def create(cls, name: str, lifetime: Lifetime, target: Any) -> Registration:
        """Classify ``target`` from its static shape and build a registration."""
        if isinstance(target, Provide):
            kind = target.kind
            target = target.target
        elif inspect.isclass(target):
            kind = FactoryKind.CLASS
        elif callable(target):
            kind = FactoryKind.FACTORY
        else:
            kind = FactoryKind.VALUE

        if kind is FactoryKind.CLASS and not inspect.isclass(target):
            msg = f"Service '{name}' is tagged as a class but {target!r} is not a class."
            raise RegistrationError(msg, name=name)
        if kind is FactoryKind.FACTORY and not callable(target):
            msg = f"Service '{name}' is tagged as a factory but {target!r} is not callable."
            raise RegistrationError(msg, name=name)

        if kind is FactoryKind.VALUE:
            return cls(
                name=name,
                lifetime=lifetime,
                kind=kind,
                target=target,
                accepts_view=False,
            )
        return cls(
            name=name,
            lifetime=lifetime,
            kind=kind,
            target=target,
            is_async=kind is FactoryKind.FACTORY and _is_async_factory(target),
            accepts_view=_accepts_view(target),
        )

    def instantiate(self, view: Any) -> Any:
        """Produce an instance, or an awaitable of one for async factories."""
        if self.kind is FactoryKind.VALUE:
            return self.target
        if self.accepts_view:
            return self.target(view)
        return self.target()


def _is_async_factory(factory: Any) -> bool:
    """Check if a factory is a coroutine function or an async callable object."""
    if inspect.iscoroutinefunction(factory):
        return True
    if inspect.isfunction(factory) or inspect.ismethod(factory):
        return False
    wrapped_factory = getattr(factory, "func", None)
    if wrapped_factory is not None and (
        inspect.isfunction(wrapped_factory) or inspect.ismethod(wrapped_factory)
    ):
        return inspect.iscoroutinefunction(wrapped_factory)
    call_method = getattr(type(factory), "__call__", None)  # noqa: B004
    return call_method is not None and inspect.iscoroutinefunction(call_method)


def _accepts_view(target: Any) -> bool:
    if is_pydantic_settings_subclass(target):
        return False
    try:
        parameters = inspect.signature(target).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        parameter.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        )
        for parameter in parameters
    )


def validate_name(name: Any) -> str:
    """Return ``name`` if it can be exposed as a provider attribute."""
    if not isinstance(name, str) or not name.isidentifier():
        msg = f"Service name {name!r} must be a valid Python identifier."
        raise RegistrationError(msg, name=name if isinstance(name, str) else None)
    if keyword.iskeyword(name):
        msg = f"Service name '{name}' is a Python keyword."
        raise RegistrationError(msg, name=name)
    if name.startswith("_"):
        msg = f"Service name '{name}' must not start with an underscore."
        raise RegistrationError(msg, name=name)
    if name in RESERVED_NAMES:
        msg = f"Service name '{name}' is reserved by the providers."
        raise RegistrationError(msg, name=name)
    return name


class RegistrationStore(Mapping[str, Registration]):
    """Immutable, ordered mapping from service name to registration.

    ``merge`` is the only way to add entries and always returns a new store.
    A name registered again keeps its original position but takes the new
    registration.
    """

    __slots__ = ("_registrations",)

    def __init__(self, registrations: Mapping[str, Registration] | None = None) -> None:
        self._registrations: dict[str, Registration] = dict(registrations or {})

    def merge(self, registrations: Mapping[str, Registration]) -> RegistrationStore:
        """Return a new store holding this store's entries overridden by ``registrations``."""
        return RegistrationStore({**self._registrations, **registrations})

    def by_lifetime(self, lifetime: Lifetime) -> list[Registration]:
        """Get all registrations of ``lifetime`` in registration order."""
        return [
            registration
            for registration in self._registrations.values()
            if registration.lifetime is lifetime
        ]

    def has_async(self, lifetime: Lifetime) -> bool:
        return any(registration.is_async for registration in self.by_lifetime(lifetime))

    def __getitem__(self, name: str) -> Registration:
        return self._registrations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._registrations)

    def __len__(self) -> int:
        return len(self._registrations)

    def __repr__(self) -> str:
        entries = ", ".join(
            f"{name}={registration.lifetime.value}"
            for name, registration in self._registrations.items()
        )
        return f"RegistrationStore({entries})"
