"""
Normalized link information built from raw server entries.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .config import PermissionPolicy
from .ftp_client import DATETIME_UNSET, ObjectType, Permission, RawEntry
from .hashing import FileHash


class FileAccess(Enum):
    READ = "r"
    WRITE = "w"
    READ_WRITE = "rw"


@dataclass
class ListingOptions:
    """Directory listing request; ``recursive_handled`` is set by the filesystem."""

    recursive: bool = False
    recursive_handled: bool = False


@dataclass(frozen=True)
class LinkMetadata:
    """Metadata update request. Only ``last_write_time`` is applied over FTP."""

    last_write_time: datetime | None = None
    is_hidden: bool | None = None
    is_read_only: bool | None = None


@dataclass(frozen=True)
class LinkInfo:
    """
    Snapshot of one file or directory on the server.

    The content hash is fetched on first access through the filesystem that
    produced the snapshot and is then kept for the lifetime of this object,
    even if the remote file changes afterwards.
    """

    full_name: str
    is_directory: bool | None
    length: int = 0
    creation_time: datetime | None = None
    last_write_time: datetime | None = None
    can_read: bool = True
    can_write: bool = True
    _hash_source: Any = field(default=None, repr=False, compare=False)
    _memo: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _memo_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    exists = True
    is_hidden = False
    is_read_only = False

    @property
    def name(self) -> str:
        return self.full_name.rstrip("/").rsplit("/", 1)[-1] or "/"

    @property
    def content_path(self) -> str:
        return self.full_name

    @property
    def hash(self) -> FileHash | None:
        """Content hash, resolved with one server round trip on first access."""
        with self._memo_lock:
            if "hash" not in self._memo:
                value = None
                if self._wants_hash():
                    value = self._hash_source.resolve_hash(self.full_name).hash
                self._memo["hash"] = value
            return self._memo["hash"]

    async def get_hash_async(self) -> FileHash | None:
        """Async counterpart of ``hash``, sharing the same cached value."""
        if "hash" in self._memo:
            return self._memo["hash"]

        value = None
        if self._wants_hash():
            value = (await self._hash_source.resolve_hash_async(self.full_name)).hash
        with self._memo_lock:
            return self._memo.setdefault("hash", value)

    def _wants_hash(self) -> bool:
        return self._hash_source is not None and self.is_directory is False


def _checked(value: datetime | None) -> datetime | None:
    if value is None or value == DATETIME_UNSET:
        return None
    return value


def root_entry() -> RawEntry:
    """Stand-in entry for ``/`` on servers without MLST."""
    return RawEntry(name="/", full_name="/", type=ObjectType.DIRECTORY, size=0)


def synthesize(
    path: str,
    entry: RawEntry,
    hash_source=None,
    policy: PermissionPolicy = PermissionPolicy.PERMISSIVE,
) -> LinkInfo:
    """
    Build a LinkInfo from a raw entry.

    Unset timestamps fall back to each other and become None when both are
    unset. Owner permission bits of zero mean the server does not report
    permissions; ``policy`` decides what that grants.
    """
    created = _checked(entry.created)
    modified = _checked(entry.modified)

    if entry.type is ObjectType.DIRECTORY:
        is_directory = True
    elif entry.type is ObjectType.FILE:
        is_directory = False
    else:
        is_directory = None

    permissions = entry.owner_permissions
    if permissions == Permission.NONE:
        can_read = can_write = policy is PermissionPolicy.PERMISSIVE
    else:
        can_read = bool(permissions & Permission.READ)
        can_write = bool(permissions & Permission.WRITE)

    return LinkInfo(
        full_name=path,
        is_directory=is_directory,
        length=entry.size,
        creation_time=created if created is not None else modified,
        last_write_time=modified if modified is not None else created,
        can_read=can_read,
        can_write=can_write,
        _hash_source=hash_source,
    )
