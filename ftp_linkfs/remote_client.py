"""
Transport protocol definitions.

Defines the primitives that FTPClient and AsyncFTPClient implement. The
operation plans only name these methods, so any object implementing them
can drive an FTPFileSystem.
"""

from __future__ import annotations

from datetime import datetime
from typing import BinaryIO, Protocol, runtime_checkable

from .ftp_client import Capability, ChecksumReply, RawEntry, RemoteExists, UploadStatus


@runtime_checkable
class FTPTransport(Protocol):
    """Blocking transport used by the blocking driver."""

    @property
    def is_connected(self) -> bool: ...

    def connect(self) -> None:
        """Establish connection to the remote server."""
        ...

    def disconnect(self) -> None:
        """Send QUIT and close the connection."""
        ...

    def discard(self) -> None:
        """Close the connection without talking to the server."""
        ...

    def has_feature(self, capability: Capability | str) -> bool: ...

    def open_read(self, path: str):
        """Start a download and return a readable data handle.

        The transfer reply must be collected with get_reply() once the
        handle is closed.

        Raises:
            FileNotFoundError: If path does not exist.
        """
        ...

    def copy_stream(self, handle, sink: BinaryIO) -> int: ...

    def get_reply(self) -> str: ...

    def upload_stream(self, path: str, source: BinaryIO, mode: RemoteExists) -> UploadStatus: ...

    def move_file(self, source: str, destination: str, mode: RemoteExists) -> bool:
        """Rename a file. Returns False if mode is SKIP and destination exists."""
        ...

    def move_directory(self, source: str, destination: str) -> None: ...

    def delete_file(self, path: str) -> None: ...

    def create_directory(self, path: str) -> None:
        """Create a directory (recursively if needed)."""
        ...

    def delete_directory(self, path: str) -> None:
        """Delete a directory and everything below it."""
        ...

    def set_modified_time(self, path: str, value: datetime) -> None: ...

    def get_listing(self, path: str, recursive: bool = False) -> list[RawEntry]: ...

    def get_object_info(self, path: str) -> RawEntry | None:
        """Describe one path, or None if it does not exist."""
        ...

    def get_checksum(self, path: str) -> ChecksumReply | None: ...


@runtime_checkable
class AsyncFTPTransport(Protocol):
    """Async transport used by the async driver.

    ``has_feature`` and ``discard`` stay synchronous, everything that talks
    to the server is a coroutine.
    """

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def discard(self) -> None: ...

    def has_feature(self, capability: Capability | str) -> bool: ...

    async def open_read(self, path: str): ...

    async def copy_stream(self, handle, sink: BinaryIO) -> int: ...

    async def get_reply(self) -> str: ...

    async def upload_stream(
        self, path: str, source: BinaryIO, mode: RemoteExists
    ) -> UploadStatus: ...

    async def move_file(self, source: str, destination: str, mode: RemoteExists) -> bool: ...

    async def move_directory(self, source: str, destination: str) -> None: ...

    async def delete_file(self, path: str) -> None: ...

    async def create_directory(self, path: str) -> None: ...

    async def delete_directory(self, path: str) -> None: ...

    async def set_modified_time(self, path: str, value: datetime) -> None: ...

    async def get_listing(self, path: str, recursive: bool = False) -> list[RawEntry]: ...

    async def get_object_info(self, path: str) -> RawEntry | None: ...

    async def get_checksum(self, path: str) -> ChecksumReply | None: ...
