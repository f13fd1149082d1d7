"""
FTP session handling against a scripted client.
"""

import asyncio

import aioftp
import pytest

from bundlepush.core.errors import BackendError, ConfigurationError
from bundlepush.storage.config import BackendType, Route
from bundlepush.storage.ftp import FtpBackend, collapse_directories

from conftest import FakeFtpClient


def ftp_route(**overrides):
    fields = {"host": "ftp.example.com", "dest_path": "/www/", "user": "deploy", "password": "pw"}
    fields.update(overrides)
    return Route(BackendType.FTP, **fields)


async def open_backend(client, **overrides):
    backend = FtpBackend(ftp_route(**overrides), client_factory=lambda: client)
    await backend.open()
    return backend


async def settle(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


def test_collapse_directories():
    assert collapse_directories(["a/b", "a", "c", "a/b/c", "c", "ab"]) == ["a", "ab", "c"]


def test_requires_host_and_dest_path():
    with pytest.raises(ConfigurationError):
        FtpBackend(ftp_route(host=None))
    with pytest.raises(ConfigurationError):
        FtpBackend(ftp_route(dest_path=None))


class TestSession:

    @pytest.mark.asyncio
    async def test_open_logs_in_and_prepares_root(self):
        client = FakeFtpClient()
        await open_backend(client)

        assert client.calls[:2] == [("connect", "ftp.example.com", 21), ("login", "deploy")]
        assert ("mkdir", "/www") in client.calls

    @pytest.mark.asyncio
    async def test_existing_non_empty_root_not_recreated(self):
        client = FakeFtpClient(dirs={"/www"})
        client.files["/www/old.js"] = b""
        await open_backend(client)

        assert client.count("mkdir") == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        await backend.close()
        await backend.close()

        assert client.quit_calls == 1
        assert backend.closed

    @pytest.mark.asyncio
    async def test_operations_after_close_fail(self):
        backend = await open_backend(FakeFtpClient())
        await backend.close()

        with pytest.raises(BackendError):
            await backend.put(b"x", "a.js")
        with pytest.raises(BackendError):
            await backend.delete_many(["a.js"])

    @pytest.mark.asyncio
    async def test_close_with_operations_in_flight(self):
        client = FakeFtpClient()
        backend = await open_backend(client)
        client.gate.clear()

        pending = asyncio.ensure_future(backend.put(b"x", "a.js"))
        await settle()

        with pytest.raises(BackendError):
            await backend.close()

        client.gate.set()
        await pending
        await backend.close()
        assert client.quit_calls == 1


class TestUpload:

    @pytest.mark.asyncio
    async def test_put_writes_under_dest_path(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        ack = await backend.put(b"body", "js/app.js")

        assert client.files["/www/js/app.js"] == b"body"
        assert ack.location == "ftp://ftp.example.com/www/js/app.js"

    @pytest.mark.asyncio
    async def test_shared_directory_created_once(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        await asyncio.gather(*(backend.put(b"x", f"js/{i}.js") for i in range(5)))

        mkdirs = [call for call in client.calls if call[0] == "mkdir"]
        assert mkdirs == [("mkdir", "/www"), ("mkdir", "/www/js")]
        assert client.count("put") == 5

    @pytest.mark.asyncio
    async def test_each_parent_created_once_across_directories(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        names = ["js/a.js", "css/b.css", "js/c.js", "css/d.css"]
        acks = await asyncio.gather(*(backend.put(b"x", name) for name in names))

        assert [ack.name for ack in acks] == names
        assert client.count("mkdir") == 3
        assert client.count("put") == 4


class TestDelete:

    @pytest.mark.asyncio
    async def test_nested_names_removed_by_parent_once(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        deleted = await backend.delete_many(["dir/a.js", "other/b.js", "dir/c.js", "dir/a.js", "top.js"])

        assert deleted == 4
        removals = [call for call in client.calls if call[0] in ("rmtree", "rm")]
        assert removals == [
            ("rmtree", "/www/dir"),
            ("rmtree", "/www/other"),
            ("rm", "/www/top.js"),
        ]

    @pytest.mark.asyncio
    async def test_nested_directory_covered_by_ancestor(self):
        client = FakeFtpClient()
        backend = await open_backend(client)

        await backend.delete_many(["a/b/c.js", "a/d.js"])

        assert [call for call in client.calls if call[0] == "rmtree"] == [("rmtree", "/www/a")]

    @pytest.mark.asyncio
    async def test_missing_entries_are_ignored(self):
        client = FakeFtpClient()

        async def gone(path):
            raise aioftp.StatusCodeError("250", "550", "not found")

        client.remove_file = gone
        backend = await open_backend(client)

        assert await backend.delete_many(["top.js"]) == 1

    @pytest.mark.asyncio
    async def test_other_failures_raise(self):
        client = FakeFtpClient()

        async def denied(path):
            raise aioftp.StatusCodeError("250", "530", "not logged in")

        client.remove = denied
        backend = await open_backend(client)

        with pytest.raises(BackendError):
            await backend.delete_many(["dir/a.js"])
