"""
Unit tests for ftp_linkfs.metadata module.

Tests cover:
- Timestamp fallbacks when the server omits one or both
- Permission bits and the policy for servers that report none
- Lazily resolved, cached content hash
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from ftp_linkfs.config import PermissionPolicy
from ftp_linkfs.ftp_client import DATETIME_UNSET, ObjectType, Permission, RawEntry
from ftp_linkfs.hashing import FileHash, HashAlgorithm, HashResolution
from ftp_linkfs.metadata import LinkInfo, root_entry, synthesize

CREATED = datetime(2023, 5, 1, 8, 0, tzinfo=timezone.utc)
MODIFIED = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_entry(**kwargs) -> RawEntry:
    values = {"name": "a.txt", "full_name": "/a.txt", "type": ObjectType.FILE, "size": 12}
    values.update(kwargs)
    return RawEntry(**values)


class TestTimestamps:
    def test_both_present(self):
        info = synthesize("/a.txt", make_entry(created=CREATED, modified=MODIFIED))

        assert info.creation_time == CREATED
        assert info.last_write_time == MODIFIED

    def test_missing_created_uses_modified(self):
        info = synthesize("/a.txt", make_entry(modified=MODIFIED))

        assert info.creation_time == MODIFIED
        assert info.last_write_time == MODIFIED

    def test_missing_modified_uses_created(self):
        info = synthesize("/a.txt", make_entry(created=CREATED))

        assert info.creation_time == CREATED
        assert info.last_write_time == CREATED

    def test_both_missing_are_none(self):
        info = synthesize("/a.txt", make_entry())

        assert info.creation_time is None
        assert info.last_write_time is None
        assert DATETIME_UNSET not in (info.creation_time, info.last_write_time)


class TestKindAndSize:
    def test_file(self):
        info = synthesize("/a.txt", make_entry())

        assert info.is_directory is False
        assert info.length == 12
        assert info.name == "a.txt"
        assert info.exists is True

    def test_directory(self):
        info = synthesize("/docs", make_entry(name="docs", type=ObjectType.DIRECTORY, size=0))

        assert info.is_directory is True
        assert info.name == "docs"

    def test_link_has_unknown_kind(self):
        info = synthesize("/ln", make_entry(name="ln", type=ObjectType.LINK))

        assert info.is_directory is None

    def test_root_entry(self):
        info = synthesize("/", root_entry())

        assert info.is_directory is True
        assert info.full_name == "/"
        assert info.name == "/"
        assert info.creation_time is None


class TestPermissions:
    @pytest.mark.parametrize(
        "bits,can_read,can_write",
        [
            (Permission.READ | Permission.WRITE, True, True),
            (Permission.READ, True, False),
            (Permission.WRITE, False, True),
            (Permission.EXECUTE, False, False),
        ],
    )
    def test_reported_bits(self, bits, can_read, can_write):
        for policy in PermissionPolicy:
            info = synthesize("/a.txt", make_entry(owner_permissions=bits), policy=policy)

            assert (info.can_read, info.can_write) == (can_read, can_write)

    def test_unreported_permissive(self):
        info = synthesize("/a.txt", make_entry(), policy=PermissionPolicy.PERMISSIVE)

        assert info.can_read and info.can_write

    def test_unreported_strict(self):
        info = synthesize("/a.txt", make_entry(), policy=PermissionPolicy.STRICT)

        assert not info.can_read
        assert not info.can_write


class TestHash:
    def test_hash_resolved_once(self):
        source = MagicMock()
        source.resolve_hash.return_value = HashResolution(
            FileHash(HashAlgorithm.SHA256, "ab12"), True
        )
        info = synthesize("/a.txt", make_entry(), hash_source=source)

        assert info.hash == FileHash(HashAlgorithm.SHA256, "ab12")
        assert info.hash == FileHash(HashAlgorithm.SHA256, "ab12")
        source.resolve_hash.assert_called_once_with("/a.txt")

    def test_missing_hash_is_cached_too(self):
        source = MagicMock()
        source.resolve_hash.return_value = HashResolution(None, True)
        info = synthesize("/a.txt", make_entry(), hash_source=source)

        assert info.hash is None
        assert info.hash is None
        source.resolve_hash.assert_called_once()

    def test_directory_hash_needs_no_request(self):
        source = MagicMock()
        info = synthesize("/docs", make_entry(type=ObjectType.DIRECTORY), hash_source=source)

        assert info.hash is None
        source.resolve_hash.assert_not_called()

    def test_without_source_hash_is_none(self):
        assert synthesize("/a.txt", make_entry()).hash is None

    @pytest.mark.asyncio
    async def test_async_hash_shares_cache(self):
        source = MagicMock()
        source.resolve_hash_async = AsyncMock(
            return_value=HashResolution(FileHash(HashAlgorithm.MD5, "ff"), True)
        )
        info = synthesize("/a.txt", make_entry(), hash_source=source)

        assert await info.get_hash_async() == FileHash(HashAlgorithm.MD5, "ff")
        assert info.hash == FileHash(HashAlgorithm.MD5, "ff")
        source.resolve_hash_async.assert_awaited_once_with("/a.txt")
        source.resolve_hash.assert_not_called()

    def test_snapshots_compare_by_value(self):
        first = synthesize("/a.txt", make_entry(modified=MODIFIED), hash_source=MagicMock())
        second = synthesize("/a.txt", make_entry(modified=MODIFIED))

        assert first == second
        assert isinstance(first, LinkInfo)
