"""
registry.py - Backend registration and execution-environment cache.

Each backend builds an expensive, reusable execution environment on first
use (binary lookup and version probe for CLI tools, library handle for
in-process engines). The cache holds one environment per backend id for the
lifetime of the registry; initialization runs at most once per id even when
several requests start at the same time. Failed initializations are not
cached, so a later request can retry.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .config import CompressionSettings

logger = logging.getLogger(__name__)


class EnvironmentCache:
    """Initialize-once, read-many store of backend environments."""

    def __init__(self):
        self._environments: Dict[str, Any] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, backend_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(backend_id)
            if lock is None:
                lock = self._locks[backend_id] = threading.Lock()
            return lock

    def get_or_create(self, backend_id: str, factory: Callable[[], Any]) -> Any:
        """Return the cached environment for backend_id, building it if needed."""
        if backend_id in self._environments:
            return self._environments[backend_id]

        with self._lock_for(backend_id):
            if backend_id not in self._environments:
                logger.debug(f"Initializing environment for {backend_id}")
                self._environments[backend_id] = factory()
            return self._environments[backend_id]

    def __contains__(self, backend_id: str) -> bool:
        return backend_id in self._environments

    def clear(self):
        with self._guard:
            self._environments.clear()


class BackendRegistry:
    """
    Ordered set of backend adapters plus their shared environment cache.

    Registration order is the invocation order and the tie-break order
    when two backends produce outputs of equal size.
    """

    def __init__(self, environments: Optional[EnvironmentCache] = None):
        self.environments = environments or EnvironmentCache()
        self._adapters: List[Any] = []

    def register(self, adapter) -> Any:
        if any(a.backend_id == adapter.backend_id for a in self._adapters):
            raise ValueError(f"Backend already registered: {adapter.backend_id}")
        self._adapters.append(adapter)
        logger.debug(f"Registered backend {adapter.backend_id} ({adapter.label})")
        return adapter

    @property
    def adapters(self) -> List[Any]:
        return list(self._adapters)

    @property
    def backend_ids(self) -> List[str]:
        return [a.backend_id for a in self._adapters]

    def __len__(self) -> int:
        return len(self._adapters)


def default_registry(settings: Optional[CompressionSettings] = None) -> BackendRegistry:
    """Registry with the built-in lossless backends in their display order."""
    from .backends import default_backends

    registry = BackendRegistry()
    for adapter in default_backends(settings or CompressionSettings()):
        registry.register(adapter)
    return registry
