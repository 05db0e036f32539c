"""Connection accessor - obtain the store binding for one call.

The remote store may rotate its handle at any time, so the binding is looked
up in the environment mapping on **every** call and never cached. A missing
binding is a deployment defect: :class:`ConfigurationError` is raised at
once and never retried.

Usage
-----
::

    from edgesql.core.connection import ConnectionAccessor

    accessor = ConnectionAccessor({"DB": binding})
    db = accessor.get_connection()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from edgesql.core.errors import ConfigurationError
from edgesql.core.protocols import StoreBinding


class ConnectionAccessor:
    """Looks up the store binding under ``binding_name`` in ``env``."""

    def __init__(self, env: Mapping[str, Any] | None = None, binding_name: str = "DB") -> None:
        self._env = env
        self.binding_name = binding_name

    def rebind(self, env: Mapping[str, Any] | None) -> None:
        """Swap the environment mapping the binding is read from."""
        self._env = env

    @property
    def is_configured(self) -> bool:
        return self._env is not None and self._env.get(self.binding_name) is not None

    def get_connection(self) -> StoreBinding:
        """Return the current binding or raise :class:`ConfigurationError`."""
        if self._env is None:
            raise ConfigurationError("Database not configured: no environment bound")
        binding = self._env.get(self.binding_name)
        if binding is None:
            raise ConfigurationError(
                f"Database not configured: binding {self.binding_name!r} is missing"
            )
        return binding

    def __repr__(self) -> str:
        return f"ConnectionAccessor(binding={self.binding_name!r}, configured={self.is_configured})"


__all__ = ["ConnectionAccessor"]
