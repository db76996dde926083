"""Stateful and networked collaborators of the freight comparison app."""

from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import Final

__all__: Final[list[str]] = ["compare_cache", "pricing_service"]


def __getattr__(name: str) -> ModuleType:
    """Lazily import service modules on first attribute access.

    Args:
        name: Attribute requested from the package.

    Returns:
        ModuleType: :mod:`services.compare_cache` or
        :mod:`services.pricing_service`.

    Raises:
        AttributeError: If an unknown attribute is requested.
    """

    if name in __all__:
        return import_module(f"{__name__}.{name}")
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
