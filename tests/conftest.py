"""
Shared pytest fixtures for BundlePush tests.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath
from typing import Dict, List, Sequence

import aioftp
import pytest

from bundlepush.core.errors import BackendError
from bundlepush.core.types import Asset, UploadAck
from bundlepush.storage.backend import BackendClient
from bundlepush.storage.config import BackendType
from bundlepush.storage.registry import BackendRegistry


# ---------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------

class FakeBackend(BackendClient):
    """
    In-memory BackendClient. Names (or ``(backend, name)`` pairs) in
    ``fail_put`` raise BackendError on put; ``fail_delete`` makes every
    delete_many fail.
    """

    def __init__(self, route, world):
        super().__init__(route)
        self.world = world
        self.opened = 0
        self.close_calls = 0
        self.deleted_batches: List[List[str]] = []

    @property
    def store(self) -> Dict[str, bytes]:
        return self.world.stores.setdefault(self.route.connection_key, {})

    async def open(self):
        self.opened += 1

    async def _close(self):
        self.close_calls += 1

    async def put(self, content: bytes, name: str) -> UploadAck:
        async with self._operation("put", name):
            await asyncio.sleep(0)
            if name in self.world.fail_put or (self.name, name) in self.world.fail_put:
                raise BackendError(f"refused {name}", backend=self.name, name=name)
            self.store[name] = content
        return UploadAck(name=name, backend=self.name, location=f"mem://{name}")

    async def delete_many(self, names: Sequence[str]) -> int:
        async with self._operation("delete"):
            await asyncio.sleep(0)
            if self.world.fail_delete:
                raise BackendError("delete refused", backend=self.name)
            self.deleted_batches.append(list(names))
            for name in names:
                self.store.pop(name, None)
        return len(names)

    async def list(self, prefix: str = "") -> List[str]:
        return [name for name in self.store if name.startswith(prefix)]


class FakeWorld:
    """State shared by every FakeBackend built through one factory."""

    def __init__(self):
        self.stores: Dict[tuple, Dict[str, bytes]] = {}
        self.clients: List[FakeBackend] = []
        self.registries: List[BackendRegistry] = []
        self.fail_put = set()
        self.fail_delete = False

    def make_client(self, route) -> FakeBackend:
        client = FakeBackend(route, self)
        self.clients.append(client)
        return client

    def registry_factory(self) -> BackendRegistry:
        registry = BackendRegistry({backend: self.make_client for backend in BackendType})
        self.registries.append(registry)
        return registry

    def all_names(self) -> List[str]:
        return sorted(name for store in self.stores.values() for name in store)


@pytest.fixture
def world():
    return FakeWorld()


# ---------------------------------------------------------------------
# Routes / assets
# ---------------------------------------------------------------------

@pytest.fixture
def s3_route_raw():
    return {
        "type": "s3",
        "accessKey": "AK",
        "secretKey": "SK",
        "bucket": "static",
    }


@pytest.fixture
def qiniu_route_raw():
    return {
        "type": "qiniu",
        "accessKey": "qak",
        "secretKey": "qsk",
        "bucket": "cdn",
        "host": "z0",
    }


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """A small build output tree."""
    root = tmp_path / "dist"
    (root / "js").mkdir(parents=True)
    (root / "css").mkdir()
    (root / "js" / "app.js").write_text("console.log('app')")
    (root / "js" / "vendor.js").write_text("/* vendor */")
    (root / "css" / "site.css").write_text("body{}")
    (root / "index.html").write_text("<html></html>")
    return root


@pytest.fixture
def assets(output_dir: Path) -> Dict[str, Asset]:
    return {
        path.relative_to(output_dir).as_posix(): Asset(
            key=path.relative_to(output_dir).as_posix(), path=path
        )
        for path in sorted(output_dir.rglob("*"))
        if path.is_file()
    }


def write_journal(path: Path, cdn, files) -> Path:
    path.write_text(json.dumps({"cdn": cdn, "files": [{"fileName": f} for f in files]}))
    return path


# ---------------------------------------------------------------------
# FTP
# ---------------------------------------------------------------------

class FakeStream:
    def __init__(self, client, path):
        self.client = client
        self.path = path
        self.chunks = []

    async def write(self, data):
        await self.client.gate.wait()
        self.chunks.append(data)


class FakeFtpClient:
    """
    Stands in for aioftp.Client. Directories listed in ``dirs`` exist;
    anything else answers 550 to LIST.
    """

    def __init__(self, dirs=()):
        self.dirs = set(dirs)
        self.files: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.gate = asyncio.Event()
        self.gate.set()
        self.quit_calls = 0

    async def connect(self, host, port=21):
        self.calls.append(("connect", host, port))

    async def login(self, user, password):
        self.calls.append(("login", user))

    async def list(self, path):
        self.calls.append(("list", path))
        await asyncio.sleep(0)
        if path not in self.dirs:
            raise aioftp.StatusCodeError("226", "550", "No such file or directory")
        return [
            (PurePosixPath(name), {"type": "file"})
            for name in self.files
            if name.startswith(path.rstrip("/") + "/")
        ]

    async def make_directory(self, path, parents=True):
        self.calls.append(("mkdir", path))
        self.dirs.add(path)

    @asynccontextmanager
    async def upload_stream(self, path):
        stream = FakeStream(self, path)
        yield stream
        self.files[path] = b"".join(stream.chunks)
        self.calls.append(("put", path))

    async def remove(self, path):
        self.calls.append(("rmtree", path))

    async def remove_file(self, path):
        self.calls.append(("rm", path))

    async def quit(self):
        self.quit_calls += 1

    def close(self):
        pass

    def count(self, op):
        return sum(1 for call in self.calls if call[0] == op)
