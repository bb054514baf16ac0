"""
Shared pytest fixtures for FTP-LinkFS tests.
"""

import asyncio
import ftplib
import hashlib
import io
import threading
import time
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ftp_linkfs.config import ConnectionConfig, FTPConfig, PermissionConfig
from ftp_linkfs.exceptions import FTPCommandError
from ftp_linkfs.filesystem import FTPFileSystem
from ftp_linkfs.ftp_client import (
    DATETIME_UNSET,
    Capability,
    ChecksumReply,
    FTPClient,
    ObjectType,
    Permission,
    RawEntry,
    RemoteExists,
    UploadStatus,
    normalize_path,
    parent_path,
)

DEFAULT_MODIFIED = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[ftp]
host = testserver.local
port = 2121
username = testuser
password = testpass
passive_mode = true
encoding = utf-8

[connection]
timeout_seconds = 45
retry_attempts = 5
retry_delay_seconds = 2

[permissions]
default_policy = strict

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a minimal INI configuration file with only required fields.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[ftp]
host = minimal.server.com
"""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def mock_ftp() -> Generator[MagicMock, None, None]:
    """
    Creates a mocked ftplib.FTP instance.

    Returns:
        Mocked FTP object with common methods stubbed.
    """
    mock = MagicMock(spec=ftplib.FTP)
    mock.encoding = "utf-8"
    mock.sock = MagicMock()

    # Default responses
    mock.sendcmd.return_value = "200 OK"
    mock.voidcmd.return_value = "200 OK"
    mock.voidresp.return_value = "226 Transfer complete"
    mock.login.return_value = "230 Login successful"
    mock.cwd.return_value = "250 OK"
    mock.pwd.return_value = "/"
    mock.quit.return_value = "221 Goodbye"

    yield mock


@pytest.fixture
def ftp_config() -> FTPConfig:
    """Creates a standard FTPConfig for testing."""
    return FTPConfig(
        host="test.ftp.local",
        port=2121,
        username="testuser",
        password="testpass",
        passive_mode=True,
        encoding="utf-8",
    )


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Creates a standard ConnectionConfig for testing."""
    return ConnectionConfig(
        timeout_seconds=30,
        retry_attempts=3,
        retry_delay_seconds=0,
    )


@pytest.fixture
def ftp_client(
    ftp_config: FTPConfig, conn_config: ConnectionConfig, mock_ftp: MagicMock
) -> Generator[FTPClient, None, None]:
    """
    Creates an FTPClient with a mocked FTP connection.

    Returns:
        FTPClient instance with mocked underlying FTP.
    """
    with patch("ftp_linkfs.ftp_client.ftplib.FTP", return_value=mock_ftp):
        client = FTPClient(ftp_config, conn_config)
        client._ftp = mock_ftp
        client._connected = True
        client._features = {"MLSD", "MLST", "MFMT", "HASH"}
        yield client


# -- in-memory server --------------------------------------------------------


class FakeServer:
    """
    In-memory FTP server state shared by a FakeTransport and an
    AsyncFakeTransport.

    Every transport call is recorded as a begin/end pair in ``events``;
    ``max_active`` is the highest number of calls seen in flight at once.
    """

    def __init__(self, features=("MLST", "MLSD", "MFMT", "HASH")):
        self.features = set(features)
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.links: set[str] = set()
        self.meta: dict[str, dict] = {}
        self.hash_error: FTPCommandError | None = None
        self.hash_calls = 0
        self.connects = 0
        self.discards = 0
        self.refuse_connect = False
        self.latency = 0.0

        self.events: list[tuple[str, str, str]] = []
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    # -- bookkeeping --

    def begin(self, who: str, method: str) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.events.append(("begin", who, method))

    def end(self, who: str, method: str) -> None:
        with self._guard:
            self.active -= 1
            self.events.append(("end", who, method))

    def calls(self, method: str) -> int:
        return sum(1 for kind, _, name in self.events if kind == "begin" and name == method)

    # -- content --

    def add_file(self, path: str, data: bytes = b"", **meta) -> None:
        self.add_dir(parent_path(path))
        self.files[path] = data
        if meta:
            self.meta[path] = meta

    def add_dir(self, path: str) -> None:
        while path != "/":
            self.dirs.add(path)
            path = parent_path(path)

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs or path in self.links

    def entry(self, path: str) -> RawEntry | None:
        if path in self.dirs:
            object_type, size = ObjectType.DIRECTORY, 0
        elif path in self.files:
            object_type, size = ObjectType.FILE, len(self.files[path])
        elif path in self.links:
            object_type, size = ObjectType.LINK, 0
        else:
            return None

        meta = self.meta.get(path, {})
        return RawEntry(
            name=path.rsplit("/", 1)[-1] or "/",
            full_name=path,
            type=object_type,
            size=size,
            created=meta.get("created", DATETIME_UNSET),
            modified=meta.get("modified", DEFAULT_MODIFIED),
            owner_permissions=meta.get("permissions", Permission.READ | Permission.WRITE),
        )

    def children(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        names = self.dirs | set(self.files) | self.links
        return sorted(
            name
            for name in names
            if name != "/" and name.startswith(prefix) and "/" not in name[len(prefix) :]
        )

    def descendants(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [
            name
            for name in self.dirs | set(self.files) | self.links
            if name != "/" and name.startswith(prefix)
        ]


class _FakeOps:
    """Transport primitives applied to a FakeServer, without any I/O."""

    def __init__(self, server: FakeServer):
        self.server = server

    def open_read(self, path):
        if path not in self.server.files:
            raise FileNotFoundError(f"550 {path}: No such file")
        return self.server.files[path]

    def upload_stream(self, path, source, mode):
        if mode is RemoteExists.SKIP and self.server.exists(path):
            return UploadStatus.SKIPPED
        if parent_path(path) not in self.server.dirs:
            raise FileNotFoundError(f"553 {parent_path(path)}: No such directory")
        self.server.files[path] = source.read()
        return UploadStatus.SUCCESS

    def move_file(self, source, destination, mode):
        if source not in self.server.files:
            raise FileNotFoundError(f"550 {source}: No such file")
        if self.server.exists(destination):
            if mode is RemoteExists.SKIP:
                return False
            self.server.files.pop(destination, None)
        self.server.files[destination] = self.server.files.pop(source)
        return True

    def move_directory(self, source, destination):
        if source not in self.server.dirs:
            raise FileNotFoundError(f"550 {source}: No such directory")
        for name in [source] + self.server.descendants(source):
            moved = destination + name[len(source) :]
            if name in self.server.dirs:
                self.server.dirs.discard(name)
                self.server.dirs.add(moved)
            elif name in self.server.files:
                self.server.files[moved] = self.server.files.pop(name)
            else:
                self.server.links.discard(name)
                self.server.links.add(moved)

    def delete_file(self, path):
        if path not in self.server.files:
            raise FileNotFoundError(f"550 {path}: No such file")
        del self.server.files[path]

    def create_directory(self, path):
        self.server.add_dir(path)

    def delete_directory(self, path):
        if path not in self.server.dirs:
            raise FileNotFoundError(f"550 {path}: No such directory")
        for name in self.server.descendants(path):
            self.server.dirs.discard(name)
            self.server.files.pop(name, None)
            self.server.links.discard(name)
        self.server.dirs.discard(path)

    def set_modified_time(self, path, value):
        if not self.server.exists(path):
            raise FileNotFoundError(f"550 {path}: No such file")
        self.server.meta.setdefault(path, {})["modified"] = value

    def get_listing(self, path, recursive=False):
        if path not in self.server.dirs:
            raise FileNotFoundError(f"550 {path}: No such directory")
        entries = []
        for name in self.server.children(path):
            entry = self.server.entry(name)
            entries.append(entry)
            if recursive and entry.type is ObjectType.DIRECTORY:
                entries.extend(self.get_listing(name, recursive=True))
        return entries

    def get_object_info(self, path):
        return self.server.entry(path)

    def get_checksum(self, path):
        self.server.hash_calls += 1
        if self.server.hash_error is not None:
            raise self.server.hash_error
        if path not in self.server.files:
            raise FileNotFoundError(f"550 {path}: No such file")
        digest = hashlib.sha256(self.server.files[path]).hexdigest()
        return ChecksumReply(algorithm="SHA-256", value=digest, is_valid=True)


class FakeTransport:
    """Blocking transport over a FakeServer."""

    def __init__(self, server: FakeServer, who: str = "sync"):
        self.server = server
        self.who = who
        self._ops = _FakeOps(server)
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        if self.server.refuse_connect:
            raise ConnectionError("Connection failed: refused")
        self.server.connects += 1
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def discard(self) -> None:
        self.server.discards += 1
        self._connected = False

    def has_feature(self, capability) -> bool:
        name = capability.value if isinstance(capability, Capability) else capability
        return name in self.server.features

    def _exchange(self, method, *args):
        self.server.begin(self.who, method)
        try:
            if self.server.latency:
                time.sleep(self.server.latency)
            return getattr(self._ops, method)(*args)
        finally:
            self.server.end(self.who, method)

    def open_read(self, path):
        return io.BytesIO(self._exchange("open_read", normalize_path(path)))

    def copy_stream(self, handle, sink):
        def _copy():
            data = handle.read()
            sink.write(data)
            return len(data)

        self.server.begin(self.who, "copy_stream")
        try:
            return _copy()
        finally:
            self.server.end(self.who, "copy_stream")

    def get_reply(self):
        self.server.begin(self.who, "get_reply")
        self.server.end(self.who, "get_reply")
        return "226 Transfer complete"

    def upload_stream(self, path, source, mode):
        return self._exchange("upload_stream", path, source, mode)

    def move_file(self, source, destination, mode):
        return self._exchange("move_file", source, destination, mode)

    def move_directory(self, source, destination):
        return self._exchange("move_directory", source, destination)

    def delete_file(self, path):
        return self._exchange("delete_file", path)

    def create_directory(self, path):
        return self._exchange("create_directory", path)

    def delete_directory(self, path):
        return self._exchange("delete_directory", path)

    def set_modified_time(self, path, value):
        return self._exchange("set_modified_time", path, value)

    def get_listing(self, path, recursive=False):
        return self._exchange("get_listing", path, recursive)

    def get_object_info(self, path):
        return self._exchange("get_object_info", path)

    def get_checksum(self, path):
        return self._exchange("get_checksum", path)


class AsyncBytesHandle:
    """Async read handle shaped like an aioftp data stream."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)
        self.closed = False

    async def read(self, count: int = -1) -> bytes:
        await asyncio.sleep(0)
        return self._buffer.read(count)

    def close(self) -> None:
        self.closed = True


class AsyncFakeTransport:
    """Async transport over a FakeServer. Each call yields to the loop mid-exchange."""

    def __init__(self, server: FakeServer, who: str = "async"):
        self.server = server
        self.who = who
        self._ops = _FakeOps(server)
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        await asyncio.sleep(0)
        if self.server.refuse_connect:
            raise ConnectionError("Connection failed: refused")
        self.server.connects += 1
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def discard(self) -> None:
        self.server.discards += 1
        self._connected = False

    def has_feature(self, capability) -> bool:
        name = capability.value if isinstance(capability, Capability) else capability
        return name in self.server.features

    async def _exchange(self, method, *args):
        self.server.begin(self.who, method)
        try:
            await asyncio.sleep(self.server.latency)
            return getattr(self._ops, method)(*args)
        finally:
            self.server.end(self.who, method)

    async def open_read(self, path):
        return AsyncBytesHandle(await self._exchange("open_read", normalize_path(path)))

    async def copy_stream(self, handle, sink):
        self.server.begin(self.who, "copy_stream")
        try:
            data = await handle.read()
            sink.write(data)
            return len(data)
        finally:
            self.server.end(self.who, "copy_stream")

    async def get_reply(self):
        self.server.begin(self.who, "get_reply")
        try:
            await asyncio.sleep(0)
        finally:
            self.server.end(self.who, "get_reply")
        return "226"

    async def upload_stream(self, path, source, mode):
        return await self._exchange("upload_stream", path, source, mode)

    async def move_file(self, source, destination, mode):
        return await self._exchange("move_file", source, destination, mode)

    async def move_directory(self, source, destination):
        return await self._exchange("move_directory", source, destination)

    async def delete_file(self, path):
        return await self._exchange("delete_file", path)

    async def create_directory(self, path):
        return await self._exchange("create_directory", path)

    async def delete_directory(self, path):
        return await self._exchange("delete_directory", path)

    async def set_modified_time(self, path, value):
        return await self._exchange("set_modified_time", path, value)

    async def get_listing(self, path, recursive=False):
        return await self._exchange("get_listing", path, recursive)

    async def get_object_info(self, path):
        return await self._exchange("get_object_info", path)

    async def get_checksum(self, path):
        return await self._exchange("get_checksum", path)


@pytest.fixture
def fake_server() -> FakeServer:
    """Creates an empty in-memory server."""
    return FakeServer()


def make_filesystem(server: FakeServer, permissions: PermissionConfig | None = None):
    return FTPFileSystem(
        FTPConfig(host="fake.ftp.local"),
        ConnectionConfig(retry_attempts=1, retry_delay_seconds=0),
        permissions,
        client_factory=lambda ftp_config, conn_config: FakeTransport(server),
        async_client_factory=lambda ftp_config, conn_config: AsyncFakeTransport(server),
    )


@pytest.fixture
def fs(fake_server: FakeServer) -> Generator[FTPFileSystem, None, None]:
    """
    Creates an FTPFileSystem backed by the in-memory server.

    Returns:
        FTPFileSystem whose blocking and async transports share fake_server.
    """
    filesystem = make_filesystem(fake_server)
    yield filesystem
    filesystem.close()


@pytest.fixture
def make_fs():
    """Returns a factory for extra filesystems over a given FakeServer."""
    return make_filesystem
