from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from scopewire.exceptions import AsyncDependencyInSyncContextError, DisposedProviderAccessError
from scopewire.references import LazyReference

if TYPE_CHECKING:
    from scopewire.registrations import Registration
    from scopewire.resolution_stack import ResolutionTracker
    from scopewire.views import CapabilityView


class CellState(Enum):
    """Resolution state of a singleton or scoped service on one provider."""

    NOT_STARTED = auto()
    IN_PROGRESS = auto()
    DONE = auto()
    DISPOSED = auto()


class LazyCell:
    """Per-provider resolution unit for one singleton or scoped name.

    The factory runs on the first ``resolve``/``aresolve`` and its result is
    memoized until ``release``. A failed factory call leaves the cell
    ``NOT_STARTED`` so a later access retries it.
    """

    __slots__ = ("_make_view", "_reference", "_sealed", "_tracker", "_value", "registration", "state")

    def __init__(
        self,
        registration: Registration,
        tracker: ResolutionTracker,
        make_view: Callable[[Registration], CapabilityView],
    ) -> None:
        self.registration = registration
        self.state = CellState.NOT_STARTED
        self._tracker = tracker
        self._make_view = make_view
        self._value: Any = None
        self._reference: LazyReference | None = None
        self._sealed = False

    @property
    def name(self) -> str:
        return self.registration.name

    @property
    def reference(self) -> LazyReference:
        """The single handle shared by every holder of this cell."""
        if self._reference is None:
            self._reference = LazyReference(self)
        return self._reference

    @property
    def is_usable(self) -> bool:
        return self.state is not CellState.DISPOSED and not self._sealed

    @property
    def is_resolved(self) -> bool:
        return self.state is CellState.DONE

    def resolve(self) -> Any:
        """Return the instance, running the factory on first use.

        Raises:
            CircularDependencyError: If the cell is already being resolved.
            DisposedProviderAccessError: If the owning provider was disposed.
            AsyncDependencyInSyncContextError: If the factory is async and has
                not been settled by ``prepare()``/``create_scope()``.

        """
        if self.state is CellState.DONE:
            return self._value
        self._ensure_usable()
        if self.registration.is_async:
            raise AsyncDependencyInSyncContextError(self.name)
        with self._resolving():
            value = self.registration.instantiate(self._make_view(self.registration))
        return self._settle(value)

    async def aresolve(self) -> Any:
        """Return the instance, awaiting an async factory on first use."""
        if self.state is CellState.DONE:
            return self._value
        self._ensure_usable()
        with self._resolving():
            value = self.registration.instantiate(self._make_view(self.registration))
            if self.registration.is_async:
                value = await value
        return self._settle(value)

    def override(self, value: Any) -> None:
        """Replace the instance; existing references see the new value."""
        self._ensure_usable()
        self._settle(value)

    def release(self) -> Any:
        """Drop the resolved instance and return it for teardown.

        Cells that never resolved are sealed instead and ``None`` is returned.
        """
        if self.state is not CellState.DONE:
            self.seal()
            return None
        value, self._value = self._value, None
        self.state = CellState.DISPOSED
        return value

    def seal(self) -> None:
        """Refuse any later resolution without touching the current state."""
        self._sealed = True

    def _ensure_usable(self) -> None:
        if not self.is_usable:
            raise DisposedProviderAccessError(self.name)

    def _settle(self, value: Any) -> Any:
        self._value = value
        self.state = CellState.DONE
        return value

    @contextmanager
    def _resolving(self) -> Iterator[None]:
        with self._tracker.track(self.name):
            self.state = CellState.IN_PROGRESS
            try:
                yield
            except BaseException:
                self.state = CellState.NOT_STARTED
                raise

    def __repr__(self) -> str:
        return f"LazyCell({self.name!r}, {self.state.name})"
