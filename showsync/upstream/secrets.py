"""Secret lookup for upstream client credentials."""

import os
import threading
from collections.abc import Mapping
from typing import Protocol

import structlog

from showsync.errors import ConfigurationError


logger = structlog.get_logger()


class SecretStore(Protocol):
    """Source of named secret parameters."""

    def get_parameter(self, name: str) -> str:
        """Return the value of a named parameter.

        Raises:
            ConfigurationError: If the parameter is missing or empty.
        """
        ...


class EnvironmentSecretStore:
    """Reads parameters from a mapping, the process environment by default."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get_parameter(self, name: str) -> str:
        """Return the value of a named parameter.

        Args:
            name: Parameter name.

        Returns:
            The parameter value.

        Raises:
            ConfigurationError: If the parameter is missing or empty.
        """
        value = self._environ.get(name)
        if not value:
            msg = f"Parameter {name} not found"
            raise ConfigurationError(msg, details={"parameter": name})
        return value


class CachedSecretStore:
    """Caches parameter values for the lifetime of the process.

    Failed lookups are not cached, so a secret provisioned later is picked
    up on the next call.
    """

    def __init__(self, inner: SecretStore) -> None:
        self._inner = inner
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="secrets")

    def get_parameter(self, name: str) -> str:
        """Return a cached parameter value, loading it on first use."""
        with self._lock:
            cached = self._cache.get(name)
        if cached is not None:
            return cached

        value = self._inner.get_parameter(name)
        with self._lock:
            self._cache[name] = value
        self._log.debug("parameter_loaded", parameter=name)
        return value

    def clear(self) -> None:
        """Drop all cached values."""
        with self._lock:
            self._cache.clear()
