"""Handles returned in place of resolved services.

A ``LazyReference`` stands for a singleton or scoped service. It resolves its
cell on first use, so holding one never triggers construction, and it stops
working once the owning provider releases the instance.

A ``TransientReference`` stands for a transient service. Every use builds a
fresh instance and tears it down right after, so no caller ends up holding an
instance the container no longer tracks.
"""

from __future__ import annotations

import functools
import inspect
import logging
import operator
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from scopewire.defaults import TEARDOWN_HOOKS
from scopewire.disposal import close_instance, close_instance_fully
from scopewire.exceptions import StrictModeViolationError

if TYPE_CHECKING:
    from scopewire.cells import LazyCell

logger = logging.getLogger(__name__)


def _unwrap(value: Any) -> Any:
    if issubclass(type(value), _Reference):
        return value._apply(_identity)  # noqa: SLF001
    return value


def _identity(value: Any) -> Any:
    return value


def _unary(op: Callable[[Any], Any]) -> Callable[[_Reference], Any]:
    def method(self: _Reference) -> Any:
        return self._apply(op)

    return method


def _binary(op: Callable[[Any, Any], Any]) -> Callable[[_Reference, Any], Any]:
    def method(self: _Reference, other: Any) -> Any:
        other = _unwrap(other)
        return self._apply(lambda instance: op(instance, other))

    return method


def _reflected(op: Callable[[Any, Any], Any]) -> Callable[[_Reference, Any], Any]:
    def method(self: _Reference, other: Any) -> Any:
        other = _unwrap(other)
        return self._apply(lambda instance: op(other, instance))

    return method


class _Reference(ABC):
    """Forwards the data model of the referenced instance.

    Subclasses decide where the instance comes from in ``_apply``.
    """

    __slots__ = ()

    @abstractmethod
    def _apply(self, operation: Callable[[Any], Any]) -> Any:
        """Run ``operation`` on the referenced instance and return its result."""

    def _rewrap(self, instance: Any, value: Any) -> Any:
        return self if value is instance else value

    @property  # type: ignore[misc]
    def __class__(self) -> type[Any]:  # noqa: PLE0307
        return self._apply(type)  # type: ignore[no-any-return]

    def __dir__(self) -> list[str]:
        return self._apply(dir)  # type: ignore[no-any-return]

    __str__ = _unary(str)
    __bool__ = _unary(bool)
    __len__ = _unary(len)
    __int__ = _unary(int)
    __float__ = _unary(float)
    __index__ = _unary(operator.index)
    __neg__ = _unary(operator.neg)
    __pos__ = _unary(operator.pos)
    __abs__ = _unary(abs)

    __lt__ = _binary(operator.lt)
    __le__ = _binary(operator.le)
    __gt__ = _binary(operator.gt)
    __ge__ = _binary(operator.ge)
    __contains__ = _binary(operator.contains)
    __getitem__ = _binary(operator.getitem)
    __add__ = _binary(operator.add)
    __sub__ = _binary(operator.sub)
    __mul__ = _binary(operator.mul)
    __truediv__ = _binary(operator.truediv)
    __floordiv__ = _binary(operator.floordiv)
    __mod__ = _binary(operator.mod)
    __and__ = _binary(operator.and_)
    __or__ = _binary(operator.or_)
    __radd__ = _reflected(operator.add)
    __rsub__ = _reflected(operator.sub)
    __rmul__ = _reflected(operator.mul)
    __rtruediv__ = _reflected(operator.truediv)
    __rand__ = _reflected(operator.and_)
    __ror__ = _reflected(operator.or_)

    def __format__(self, format_spec: str) -> str:
        return self._apply(lambda instance: format(instance, format_spec))  # type: ignore[no-any-return]

    def __iter__(self) -> Any:
        return self._apply(iter)

    def __setitem__(self, key: Any, value: Any) -> None:
        self._apply(lambda instance: operator.setitem(instance, key, value))

    def __delitem__(self, key: Any) -> None:
        self._apply(lambda instance: operator.delitem(instance, key))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._apply(lambda instance: instance(*args, **kwargs))

    def __enter__(self) -> Any:
        return self._apply(lambda instance: self._rewrap(instance, instance.__enter__()))

    def __exit__(self, *exc_info: Any) -> Any:
        return self._apply(lambda instance: instance.__exit__(*exc_info))


class LazyReference(_Reference):
    """Handle to a singleton or scoped service held in a ``LazyCell``.

    Member access resolves the cell. Members and method results that are the
    instance itself come back as this reference. ``isinstance`` checks see the
    instance's class.

    Raises:
        DisposedProviderAccessError: On any use after the provider released
            the instance.

    """

    __slots__ = ("_cell",)

    def __init__(self, cell: LazyCell) -> None:
        object.__setattr__(self, "_cell", cell)

    def _apply(self, operation: Callable[[Any], Any]) -> Any:
        return operation(self._cell.resolve())

    def __getattr__(self, name: str) -> Any:
        if name == "_cell":
            raise AttributeError(name)
        instance = self._cell.resolve()
        value = getattr(instance, name)
        if inspect.ismethod(value) and value.__self__ is instance:
            return self._bind(instance, value)
        return self._rewrap(instance, value)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._cell.resolve(), name, _unwrap(value))

    def __delattr__(self, name: str) -> None:
        delattr(self._cell.resolve(), name)

    def __eq__(self, other: object) -> bool:
        return self._cell.resolve() == _unwrap(other)  # type: ignore[no-any-return]

    def __ne__(self, other: object) -> bool:
        return self._cell.resolve() != _unwrap(other)  # type: ignore[no-any-return]

    def __hash__(self) -> int:
        return hash(self._cell.resolve())

    async def __aenter__(self) -> Any:
        instance = self._cell.resolve()
        return self._rewrap(instance, await instance.__aenter__())

    async def __aexit__(self, *exc_info: Any) -> Any:
        return await self._cell.resolve().__aexit__(*exc_info)

    def __repr__(self) -> str:
        cell = self._cell
        if not cell.is_usable:
            return f"<LazyReference {cell.name!r} (disposed)>"
        if not cell.is_resolved:
            return f"<LazyReference {cell.name!r} (pending)>"
        return repr(cell.resolve())

    def _bind(self, instance: Any, method: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(method):

            @functools.wraps(method)
            async def call_async(*args: Any, **kwargs: Any) -> Any:
                return self._rewrap(instance, await method(*args, **kwargs))

            return call_async

        @functools.wraps(method)
        def call(*args: Any, **kwargs: Any) -> Any:
            return self._rewrap(instance, method(*args, **kwargs))

        return call


class TransientReference(_Reference):
    """Handle to a transient service.

    Each member access builds a fresh instance. A plain attribute read closes
    the instance right after the read; a method comes back wrapped so the
    instance is closed after the call, or after the awaited result for
    coroutine methods. Teardown hooks themselves always read as ``None``.

    Handles compare and hash by identity: they stand for an access, not for a
    value. For the same reason ``isinstance`` checks see ``TransientReference``
    itself and never build an instance.
    """

    __slots__ = ("_name", "_produce", "_strict")

    def __init__(self, name: str, produce: Callable[[], Any], *, strict: bool) -> None:
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_produce", produce)
        object.__setattr__(self, "_strict", strict)

    def _apply(self, operation: Callable[[Any], Any]) -> Any:
        instance = self._produce()
        try:
            return operation(instance)
        finally:
            close_instance(instance)

    def __getattr__(self, name: str) -> Any:
        if name in TransientReference.__slots__:
            raise AttributeError(name)
        if name in TEARDOWN_HOOKS:
            return None
        instance = self._produce()
        try:
            value = getattr(instance, name)
        except BaseException:
            close_instance(instance)
            raise
        if inspect.isroutine(value):
            return self._bind(instance, value)
        close_instance(instance)
        return self._rewrap(instance, value)

    def __setattr__(self, name: str, value: Any) -> None:
        if self._strict:
            msg = f"Cannot set '{name}' on transient service '{self._name}'."
            raise StrictModeViolationError(msg, name=self._name)
        logger.debug("Ignoring assignment of %r on transient service %r", name, self._name)

    def __delattr__(self, name: str) -> None:
        self.__setattr__(name, None)

    __eq__ = object.__eq__
    __ne__ = object.__ne__
    __hash__ = object.__hash__

    @property  # type: ignore[misc]
    def __class__(self) -> type[Any]:  # noqa: PLE0307
        return TransientReference

    def __repr__(self) -> str:
        return f"<TransientReference {self._name!r}>"

    def _bind(self, instance: Any, method: Callable[..., Any]) -> Callable[..., Any]:
        async def finish(awaitable: Any) -> Any:
            try:
                result = await awaitable
            finally:
                await close_instance_fully(instance)
            return self._rewrap(instance, result)

        @functools.wraps(method)
        def call(*args: Any, **kwargs: Any) -> Any:
            try:
                result = method(*args, **kwargs)
            except BaseException:
                close_instance(instance)
                raise
            if inspect.isawaitable(result):
                return finish(result)
            close_instance(instance)
            return self._rewrap(instance, result)

        return call
