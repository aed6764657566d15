from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from scopewire.defaults import ASYNC_TEARDOWN_HOOK, SYNC_TEARDOWN_HOOK
from scopewire.exceptions import AsyncDependencyInSyncContextError

logger = logging.getLogger(__name__)

TeardownStep = Callable[[], Any]


def teardown_hooks(instance: Any) -> list[TeardownStep]:
    """Return the instance's teardown hooks, synchronous one first."""
    hooks = []
    for hook_name in (SYNC_TEARDOWN_HOOK, ASYNC_TEARDOWN_HOOK):
        hook = getattr(instance, hook_name, None)
        if callable(hook):
            hooks.append(hook)
    return hooks


def close_instance(instance: Any) -> None:
    """Run the synchronous teardown hook of ``instance`` if it has one."""
    hook = getattr(instance, SYNC_TEARDOWN_HOOK, None)
    if callable(hook):
        hook()


async def close_instance_fully(instance: Any) -> None:
    """Run both teardown hooks of ``instance``, awaiting the asynchronous one."""
    close_instance(instance)
    hook = getattr(instance, ASYNC_TEARDOWN_HOOK, None)
    if callable(hook):
        result = hook()
        if inspect.isawaitable(result):
            await result


class Teardown:
    """Ordered teardown steps collected by one ``dispose()`` call.

    Steps are instance hooks and nested provider disposals. ``run`` invokes
    every step in the order it was added, even when an earlier step fails.
    Awaitables returned by steps are joined into one awaitable, which is
    always awaited to the end before any failure is raised.

    When several steps fail, the first failure is raised and the later ones
    hang off its ``__context__`` chain, in order.
    """

    __slots__ = ("_steps",)

    def __init__(self) -> None:
        self._steps: list[TeardownStep] = []

    def __len__(self) -> int:
        return len(self._steps)

    def add_instance(self, instance: Any) -> None:
        self._steps.extend(teardown_hooks(instance))

    def add_step(self, step: TeardownStep) -> None:
        self._steps.append(step)

    def run(self) -> Awaitable[None] | None:
        """Invoke all steps.

        Returns:
            ``None`` when every step completed synchronously, otherwise an
            awaitable that completes when all pending steps have completed.
            If a synchronous step failed while others are pending, the
            awaitable raises that failure once the pending steps are done.

        Raises:
            Exception: The first failure of a synchronous step, when no step
                is pending.

        """
        steps, self._steps = self._steps, []
        pending: list[Awaitable[Any]] = []
        errors: list[BaseException] = []
        for step in steps:
            try:
                result = step()
            except Exception as error:  # noqa: BLE001
                logger.debug("Teardown step %r failed: %r", step, error)
                errors.append(error)
                continue
            if inspect.isawaitable(result):
                pending.append(result)

        if pending:
            logger.debug("Waiting for %d asynchronous teardown step(s)", len(pending))
            return _join(pending, errors)
        if errors:
            raise chain_errors(errors)
        return None


def chain_errors(errors: list[BaseException]) -> BaseException:
    """Return the first error with every later one appended to its context chain."""
    first = errors[0]
    seen = {id(first)}
    tail = first
    for error in errors[1:]:
        while tail.__context__ is not None and id(tail.__context__) not in seen:
            tail = tail.__context__
            seen.add(id(tail))
        if id(error) in seen:
            continue
        tail.__context__ = error
        tail = error
        seen.add(id(error))
    return first


async def _join(pending: list[Awaitable[Any]], errors: list[BaseException]) -> None:
    results = await asyncio.gather(*pending, return_exceptions=True)
    errors = [*errors, *(result for result in results if isinstance(result, BaseException))]
    if errors:
        raise chain_errors(errors)


def complete_sync(result: Awaitable[None] | None) -> None:
    """Drive the result of ``dispose()`` to completion from synchronous code.

    Without a running event loop the pending teardown is run to the end and
    its failures propagate.

    Raises:
        AsyncDependencyInSyncContextError: If an event loop is running. The
            teardown is not started; it is kept in the error's ``pending``
            attribute for the caller to await.

    """
    if result is None:
        return
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(_wait(result))
        return
    msg = "Asynchronous teardown cannot complete in a running event loop; use 'async with'."
    raise AsyncDependencyInSyncContextError(message=msg, pending=result)


async def _wait(awaitable: Awaitable[None]) -> None:
    await awaitable
