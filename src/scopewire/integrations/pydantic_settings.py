"""Detection of pydantic settings classes registered as services.

Settings classes read their values from the environment, so they are
constructed without the capability view. Both ``pydantic-settings`` and the
``pydantic.v1`` compatibility layer are recognised when installed; neither
is required.
"""

from __future__ import annotations

import importlib
import warnings
from functools import cache
from typing import Any

_PYDANTIC_V1_WARNING_PATTERN = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)
_SETTINGS_MODULES = ("pydantic_settings", "pydantic.v1")


def _import_base_settings(module_name: str) -> type[Any] | None:
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message=_PYDANTIC_V1_WARNING_PATTERN,
            category=UserWarning,
        )
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
    base_settings = getattr(module, "BaseSettings", None)
    return base_settings if isinstance(base_settings, type) else None


@cache
def settings_bases() -> tuple[type[Any], ...]:
    """Return the distinct ``BaseSettings`` classes importable in this environment."""
    bases: list[type[Any]] = []
    for module_name in _SETTINGS_MODULES:
        base = _import_base_settings(module_name)
        if base is not None and base not in bases:
            bases.append(base)
    return tuple(bases)


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return true when candidate subclasses a supported pydantic settings base."""
    if not isinstance(candidate, type):
        return False
    return any(issubclass(candidate, base) for base in settings_bases())


__all__ = [
    "is_pydantic_settings_subclass",
    "settings_bases",
]
