"""
Directory-oriented file transfer over FTP (aioftp).

The session is stateful: ``open`` connects and logs in once per run, every
upload and delete of the run shares it, and ``close`` ends it. A single FTP
control connection can only carry one command at a time, so commands are
serialized on a lock while callers keep issuing them concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from typing import Callable, Dict, List, Optional, Sequence

import aioftp

from ..core.errors import BackendError
from ..core.types import UploadAck
from .backend import BackendClient, parent_directory
from .config import Route

logger = logging.getLogger(__name__)

DEFAULT_PORT = 21
NOT_FOUND = "550"


def collapse_directories(directories: Sequence[str]) -> List[str]:
    """
    Drop duplicates and any directory already covered by a removed
    ancestor, so each subtree is removed exactly once.
    """
    kept: List[str] = []
    for directory in sorted(set(directories), key=lambda d: (d.count("/"), d)):
        if any(directory == k or directory.startswith(k + "/") for k in kept):
            continue
        kept.append(directory)
    return kept


def _is_not_found(error: Exception) -> bool:
    codes = getattr(error, "received_codes", ()) or ()
    return any(str(code) == NOT_FOUND for code in codes)


class FtpBackend(BackendClient):

    def __init__(
        self,
        route: Route,
        *,
        client_factory: Optional[Callable[[], aioftp.Client]] = None,
    ):
        super().__init__(route)
        self._require(
            ("host", route.host),
            ("destPath", route.dest_path is not None),
        )
        self.root = route.dest_path.rstrip("/") or "/"
        self._client_factory = client_factory or (
            lambda: aioftp.Client(socket_timeout=route.options.get("timeout", 30))
        )
        self._client: Optional[aioftp.Client] = None
        self._lock = asyncio.Lock()
        self._directories: Dict[str, asyncio.Task] = {}

    def _remote(self, name: str) -> str:
        return posixpath.join(self.root, name.lstrip("/"))

    # --------------------------------------------------------
    # Session
    # --------------------------------------------------------

    async def open(self) -> None:
        if self._client is not None:
            return

        client = self._client_factory()
        try:
            await client.connect(self.route.host, self.route.port or DEFAULT_PORT)
            await client.login(
                self.route.user or "anonymous",
                self.route.password or "",
            )
        except Exception as e:
            client.close()
            raise BackendError(
                f"FTP connection to {self.route.host} failed: {e}",
                backend=self.name,
            ) from e

        self._client = client
        await self.ensure_directory("")

    async def _close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.quit()
        except Exception as e:
            logger.debug("FTP quit failed, dropping connection: %s", e)
            client.close()

    def _session(self) -> aioftp.Client:
        if self._client is None:
            raise BackendError("FTP session is not open", backend=self.name)
        return self._client

    # --------------------------------------------------------
    # Directories
    # --------------------------------------------------------

    async def ensure_directory(self, path: str) -> None:
        """
        Create ``path`` (relative to destPath) unless it already holds
        entries. Concurrent callers for the same directory share one
        creation attempt.
        """
        remote = self._remote(path) if path else self.root
        task = self._directories.get(remote)
        if task is None:
            task = asyncio.ensure_future(self._create_directory(remote))
            self._directories[remote] = task
        await task

    async def _create_directory(self, remote: str) -> None:
        async with self._operation("mkdir", remote):
            client = self._session()
            async with self._lock:
                try:
                    entries = await client.list(remote)
                except aioftp.StatusCodeError as e:
                    if not _is_not_found(e):
                        raise
                    entries = []

                if not entries:
                    logger.debug("ftp mkdir -p %s", remote)
                    await client.make_directory(remote, parents=True)

    # --------------------------------------------------------
    # Operations
    # --------------------------------------------------------

    async def put(self, content: bytes, name: str) -> UploadAck:
        remote = self._remote(name)

        parent = parent_directory(name)
        if parent:
            await self.ensure_directory(parent)

        async with self._operation("put", name):
            client = self._session()
            async with self._lock:
                async with client.upload_stream(remote) as stream:
                    await stream.write(content)

        return UploadAck(
            name=name,
            backend=self.name,
            location=f"ftp://{self.route.host}{remote}",
        )

    async def delete_many(self, names: Sequence[str]) -> int:
        """
        Nested names are removed through their parent directory, each
        unique parent at most once; top-level names one by one.
        """
        unique = list(dict.fromkeys(names))
        parents = collapse_directories(
            [parent_directory(name) for name in unique if parent_directory(name)]
        )
        top_level = [name for name in unique if not parent_directory(name)]

        async with self._operation("delete"):
            client = self._session()
            async with self._lock:
                for directory in parents:
                    await self._remove(client.remove, self._remote(directory))
                for name in top_level:
                    await self._remove(client.remove_file, self._remote(name))

        return len(unique)

    @staticmethod
    async def _remove(remover, remote: str) -> None:
        try:
            await remover(remote)
        except aioftp.StatusCodeError as e:
            if not _is_not_found(e):
                raise
            logger.debug("ftp: %s already gone", remote)

    async def list(self, prefix: str = "") -> List[str]:
        remote = self._remote(prefix) if prefix else self.root
        async with self._operation("list", remote):
            client = self._session()
            async with self._lock:
                entries = await client.list(remote)
        return [str(path) for path, _info in entries]


__all__ = ["FtpBackend", "collapse_directories"]
