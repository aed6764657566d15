from __future__ import annotations

import asyncio
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from traceback import StackSummary

from scopewire.exceptions import CircularDependencyError

# Context variable for resolution tracking (works with both threads and async tasks)
# Stores (task_id, in-progress names per tracker) to detect when the map needs cloning for new async tasks
_InProgress = dict["ResolutionTracker", dict[str, StackSummary]]

_in_progress: ContextVar[tuple[int | None, _InProgress] | None] = ContextVar(
    "scopewire_in_progress",
    default=None,
)


def _get_context_id() -> int | None:
    """Get an identifier for the current execution context.

    Returns the id of the current async task if running in an async context,
    or None if running in a sync context.
    """
    try:
        task = asyncio.current_task()
        return id(task) if task is not None else None
    except RuntimeError:
        return None


def _get_in_progress() -> _InProgress:
    """Get the current context's in-progress names, keyed by tracker.

    When called from a different async task than the one that created the map,
    returns a cloned copy so resolutions running in parallel tasks never see
    each other's names.
    """
    current_task_id = _get_context_id()
    stored = _in_progress.get()

    if stored is None:
        progress: _InProgress = {}
        _in_progress.set((current_task_id, progress))
        return progress

    owner_task_id, progress = stored

    if current_task_id is not None and owner_task_id != current_task_id:
        cloned = {tracker: dict(names) for tracker, names in progress.items()}
        _in_progress.set((current_task_id, cloned))
        return cloned

    return progress


class ResolutionTracker:
    """Track the names a provider is currently resolving.

    Every provider owns one tracker. A name stays in progress for the duration
    of its factory call; asking for it again from the same call chain before
    the call returns is a circular dependency. Each asyncio task sees its own
    copy of the in-progress names, so independent resolutions awaited side by
    side never collide. A stack snapshot is kept for each in-progress name so
    the error can point at where the cycle started.
    """

    __slots__ = ()

    def _names(self) -> dict[str, StackSummary]:
        # Insertion order is resolution order.
        return _get_in_progress().get(self, {})

    def __contains__(self, name: object) -> bool:
        return name in self._names()

    @property
    def path(self) -> tuple[str, ...]:
        """Names currently in progress, outermost first."""
        return tuple(self._names())

    def circular(self, name: str) -> CircularDependencyError:
        """Build the error for a re-entrant resolution of ``name``."""
        names = self._names()
        return CircularDependencyError(
            name,
            stack=names.get(name),
            path=tuple(names),
        )

    @contextmanager
    def track(self, name: str) -> Iterator[None]:
        """Mark ``name`` in progress while the body runs.

        Raises:
            CircularDependencyError: If ``name`` is already in progress.

        """
        if name in self._names():
            raise self.circular(name)
        progress = _get_in_progress()
        names = progress.setdefault(self, {})
        names[name] = StackSummary.from_list(traceback.extract_stack()[:-2])
        try:
            yield
        finally:
            del names[name]
            if not names and progress.get(self) is names:
                del progress[self]
