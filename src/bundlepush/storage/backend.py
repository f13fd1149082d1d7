from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Sequence, Tuple

from ..core.errors import BackendError, ConfigurationError, ErrorCode
from ..core.types import UploadAck
from .config import Route

logger = logging.getLogger(__name__)


# ============================================================
# Helpers
# ============================================================

def parent_directory(name: str) -> str:
    """``dir/sub/a.js`` -> ``dir/sub``; top-level names -> ``""``."""
    return posixpath.dirname(name.strip("/"))


# ============================================================
# Backend Client
# ============================================================

class BackendClient(ABC):
    """
    Uniform async client over one remote storage backend.

    One instance serves one route (or several routes sharing the same
    connection identity) for the duration of a run and is owned by the
    BackendRegistry. Operations may be outstanding concurrently.
    """

    def __init__(self, route: Route):
        self.route = route
        self._inflight = 0
        self._closed = False

    @property
    def name(self) -> str:
        return self.route.backend.value

    @property
    def closed(self) -> bool:
        return self._closed

    def _require(self, *fields: Tuple[str, object]) -> None:
        """
        Fail construction on missing settings, before any network activity.
        """
        missing = [label for label, value in fields if not value]
        if missing:
            raise ConfigurationError(
                f"{self.route.display_name} route is missing: {', '.join(missing)}",
                code=ErrorCode.MISSING_CREDENTIALS,
            )

    @asynccontextmanager
    async def _operation(self, what: str, name: str = "") -> AsyncIterator[None]:
        """
        Bookkeeping around every remote call: refuses use after close,
        tracks in-flight operations, and maps transport failures to
        BackendError.
        """
        if self._closed:
            raise BackendError(
                f"{what} issued after the {self.name} session was closed",
                backend=self.name,
                name=name or None,
            )
        self._inflight += 1
        try:
            yield
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(
                f"{what} failed on {self.name}: {e}",
                backend=self.name,
                name=name or None,
            ) from e
        finally:
            self._inflight -= 1

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def open(self) -> None:
        """Establish a session. No-op for stateless backends."""

    async def close(self) -> None:
        """
        Release the session. Idempotent.

        Raises:
            BackendError if operations are still in flight.
        """
        if self._closed:
            return
        if self._inflight:
            raise BackendError(
                f"close() called with {self._inflight} operations in flight",
                backend=self.name,
            )
        self._closed = True
        await self._close()

    async def _close(self) -> None:
        pass

    # --------------------------------------------------------
    # Operations
    # --------------------------------------------------------

    @abstractmethod
    async def put(self, content: bytes, name: str) -> UploadAck:
        """
        Upload raw bytes under a logical name.

        Raises:
            BackendError
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_many(self, names: Sequence[str]) -> int:
        """
        Delete a batch of logical names.

        Returns:
            Number of names deleted.

        Raises:
            BackendError
        """
        raise NotImplementedError

    @abstractmethod
    async def list(self, prefix: str = "") -> List[str]:
        """Names stored under a prefix (or directory)."""
        raise NotImplementedError

    async def ensure_directory(self, path: str) -> None:
        """Create a directory and its ancestors. Object stores have none."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name} closed={self._closed}>"


__all__ = ["BackendClient", "parent_directory"]
