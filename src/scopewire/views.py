from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from scopewire.defaults import MANAGEMENT_MEMBERS
from scopewire.exceptions import StrictModeViolationError

if TYPE_CHECKING:
    from scopewire.providers import BaseProvider

logger = logging.getLogger(__name__)


class CapabilityView:
    """Restricted view of a provider handed to one factory invocation.

    The view is built fresh for every call and looks names up live on the
    provider, so a reference taken during construction can be dereferenced
    later, once the sibling it points at is resolvable.

    What the view hides:

    * the service being constructed (``owner``), so a factory cannot ask for
      itself;
    * the provider management members (``create_scope``, ``dispose`` and their
      async variants);
    * scoped services, when the view is over a host provider, which is the
      case for singleton and transient factories.

    Hidden names read as ``None`` on lenient providers and raise on strict ones.
    Singleton and scoped services come back as ``LazyReference`` handles that
    are not resolved until a member is used.
    """

    __slots__ = ("_owner", "_provider")

    def __init__(self, provider: BaseProvider, owner: str) -> None:
        object.__setattr__(self, "_provider", provider)
        object.__setattr__(self, "_owner", owner)

    @property
    def owner(self) -> str:
        """Name of the service this view was built for."""
        return self._owner

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._lookup(name)

    def __getitem__(self, name: str) -> Any:
        return self._lookup(name)

    def __contains__(self, name: object) -> bool:
        return name != self._owner and name in self._provider

    def __iter__(self) -> Iterator[str]:
        return (name for name in self._provider if name != self._owner)

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *self})

    def __setattr__(self, name: str, value: Any) -> None:
        if self._provider.strict:
            msg = f"Service '{self._owner}' cannot assign '{name}' through its injected services."
            raise StrictModeViolationError(msg, name=name)
        logger.debug("Ignoring assignment of %r from the services of %r", name, self._owner)

    def __repr__(self) -> str:
        return f"<CapabilityView for {self._owner!r} over {self._provider!r}>"

    def _lookup(self, name: str) -> Any:
        provider = self._provider
        if name == self._owner:
            msg = f"Service '{name}' cannot reference itself while it is being constructed."
            return provider._deny(StrictModeViolationError(msg, name=name))  # noqa: SLF001
        if name in MANAGEMENT_MEMBERS:
            msg = f"'{name}' is not available to service '{self._owner}'."
            return provider._deny(StrictModeViolationError(msg, name=name))  # noqa: SLF001
        return provider._lookup(name, resolve=False)  # noqa: SLF001
