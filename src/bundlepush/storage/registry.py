"""
Backend discovery and per-run client ownership.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..core.errors import BackendError
from .backend import BackendClient
from .config import BackendType, Route

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Route], BackendClient]


class BackendRegistry:
    """
    Instantiates and caches one BackendClient per distinct backend
    (type + connection identity) for the lifetime of one run.

    Variant classes are resolved lazily so a run only imports the SDKs it
    actually needs. Use as an async context manager: every client is closed
    exactly once on exit, whatever happened inside.
    """

    _backends: Dict[BackendType, Union[str, BackendFactory]] = {
        BackendType.QINIU: "bundlepush.storage.qiniu:QiniuBackend",
        BackendType.TXCOS: "bundlepush.storage.cos:CosBackend",
        BackendType.FTP: "bundlepush.storage.ftp:FtpBackend",
        BackendType.S3: "bundlepush.storage.s3:S3Backend",
    }

    @classmethod
    def register(cls, backend: BackendType, factory: Union[str, BackendFactory]):
        """Register (or replace) the implementation of a backend type."""
        cls._backends[backend] = factory

    @classmethod
    def resolve(cls, backend: BackendType) -> BackendFactory:
        if backend not in cls._backends:
            available = ", ".join(b.value for b in cls._backends)
            raise ValueError(f"Unknown backend: '{backend}'. Available: {available}")

        factory = cls._backends[backend]
        if isinstance(factory, str):
            module_name, _, attr = factory.partition(":")
            factory = getattr(importlib.import_module(module_name), attr)
        return factory

    def __init__(self, overrides: Optional[Mapping[BackendType, BackendFactory]] = None):
        self._overrides = dict(overrides or {})
        self._clients: Dict[tuple, BackendClient] = {}
        self._closed = False

    @property
    def clients(self) -> List[BackendClient]:
        return list(self._clients.values())

    def _factory(self, backend: BackendType) -> BackendFactory:
        if backend in self._overrides:
            return self._overrides[backend]
        return self.resolve(backend)

    async def acquire(self, route: Route) -> BackendClient:
        """
        Client serving ``route``, constructed and opened on first use.

        Raises:
            ConfigurationError when the route cannot back a client.
            BackendError when the session cannot be opened.
        """
        if self._closed:
            raise BackendError("Backend registry already closed", backend=route.backend.value)

        key = route.connection_key
        client = self._clients.get(key)
        if client is not None:
            return client

        client = self._factory(route.backend)(route)
        # Cached before opening so a half-opened client is still torn down.
        self._clients[key] = client
        await client.open()
        logger.debug("acquired %r", client)
        return client

    async def acquire_all(self, routes: Iterable[Route]) -> Dict[tuple, BackendClient]:
        acquired = {}
        for route in routes:
            acquired[route.connection_key] = await self.acquire(route)
        return acquired

    def get(self, route: Route) -> BackendClient:
        try:
            return self._clients[route.connection_key]
        except KeyError:
            raise BackendError(
                f"No client acquired for {route.backend.value} route",
                backend=route.backend.value,
            ) from None

    async def close(self) -> None:
        """
        Close every client once. Failures are logged so one broken session
        cannot keep the others open.
        """
        if self._closed:
            return
        self._closed = True

        for client in self._clients.values():
            try:
                await client.close()
            except Exception as e:
                logger.warning("Failed to close %s backend: %s", client.name, e)

    async def __aenter__(self) -> "BackendRegistry":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["BackendRegistry", "BackendFactory"]
