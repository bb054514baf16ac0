"""
Filesystem operations expressed as transport plans.

Every public operation of FTPFileSystem is defined here exactly once; the
filesystem runs the same plan through the blocking or the async driver.
"""

import logging

from .config import PermissionPolicy
from .engine import Plan, call
from .exceptions import ConflictError, NotEmptyError
from .ftp_client import (
    Capability,
    ObjectType,
    RawEntry,
    RemoteExists,
    UploadStatus,
    join_path,
    normalize_path,
)
from .hashing import HashResolver
from .metadata import LinkInfo, LinkMetadata, ListingOptions, root_entry, synthesize

logger = logging.getLogger(__name__)


class FTPOperations:
    def __init__(
        self,
        hash_resolver: HashResolver,
        hash_source=None,
        policy: PermissionPolicy = PermissionPolicy.PERMISSIVE,
    ):
        self.hash_resolver = hash_resolver
        self._hash_source = hash_source
        self._policy = policy

    def _synthesize(self, path: str, entry: RawEntry) -> LinkInfo:
        return synthesize(path, entry, self._hash_source, self._policy)

    # -- lookups ------------------------------------------------------------

    def get_info(self, path: str) -> Plan:
        """LinkInfo for path, or None when it is missing or cannot be looked up."""
        path = normalize_path(path)
        try:
            if path == "/" and not (yield call("has_feature", Capability.MLST)):
                # Servers without MLST misreport the root; describe it locally
                return self._synthesize(path, root_entry())
            entry = yield call("get_object_info", path)
        except Exception as exc:
            logger.debug("Lookup of %s failed: %s", path, exc)
            return None

        return self._synthesize(path, entry) if entry is not None else None

    def get_file_info(self, path: str) -> Plan:
        info = yield from self.get_info(path)
        return info if info is not None and info.is_directory is False else None

    def get_directory_info(self, path: str) -> Plan:
        info = yield from self.get_info(path)
        return info if info is not None and info.is_directory else None

    def resolve_hash(self, path: str) -> Plan:
        return (yield from self.hash_resolver.resolve(normalize_path(path)))

    # -- files --------------------------------------------------------------

    def read_file(self, path: str, sink) -> Plan:
        path = normalize_path(path)
        handle = yield call("open_read", path)
        try:
            try:
                yield call("copy_stream", handle, sink)
            finally:
                handle.close()
        except Exception:
            # The transfer reply is still pending on the control channel
            yield call("discard")
            raise

        yield call("get_reply")

    def open_read(self, path: str) -> Plan:
        return (yield call("open_read", normalize_path(path)))

    def finish_read(self, path: str, reached_eof: bool) -> Plan:
        try:
            yield call("get_reply")
        except OSError as exc:
            if reached_eof:
                raise
            # Reader stopped early; servers answer that with 426
            logger.debug("Partial read of %s closed with: %s", path, exc)

    def write_file(self, path: str, source, overwrite: bool) -> Plan:
        path = normalize_path(path)
        mode = RemoteExists.OVERWRITE if overwrite else RemoteExists.SKIP

        status = yield call("upload_stream", path, source, mode)
        if status is UploadStatus.SKIPPED:
            raise ConflictError(f"Unable to create a new file, it already exists: {path}")

        return (yield from self.get_file_info(path))

    def move_file(self, source: str, destination: str, overwrite: bool) -> Plan:
        source = normalize_path(source)
        destination = normalize_path(destination)
        mode = RemoteExists.OVERWRITE if overwrite else RemoteExists.SKIP

        moved = yield call("move_file", source, destination, mode)
        if not moved:
            raise ConflictError(f"Unable to move file, destination already exists: {destination}")

        return (yield from self.get_file_info(destination))

    def delete_file(self, path: str) -> Plan:
        yield call("delete_file", normalize_path(path))

    # -- directories --------------------------------------------------------

    def create_directory(self, path: str) -> Plan:
        path = normalize_path(path)
        yield call("create_directory", path)
        return (yield from self.get_directory_info(path))

    def move_directory(self, source: str, destination: str) -> Plan:
        destination = normalize_path(destination)
        yield call("move_directory", normalize_path(source), destination)
        return (yield from self.get_directory_info(destination))

    def delete_directory(self, path: str, recursive: bool) -> Plan:
        path = normalize_path(path)
        if not recursive:
            entries = yield call("get_listing", path, False)
            if entries:
                raise NotEmptyError(f"The directory is not empty: {path}")

        yield call("delete_directory", path)

    def list_directory(self, path: str, options: ListingOptions) -> Plan:
        path = normalize_path(path)
        options.recursive_handled = True

        entries = yield call("get_listing", path, options.recursive)
        return [
            self._synthesize(entry.full_name or join_path(path, entry.name), entry)
            for entry in entries
            if entry.type is not ObjectType.LINK
        ]

    # -- metadata -----------------------------------------------------------

    def update_metadata(self, path: str, metadata: LinkMetadata) -> Plan:
        path = normalize_path(path)
        if metadata.last_write_time is not None:
            yield call("set_modified_time", path, metadata.last_write_time)
        if metadata.is_hidden is not None or metadata.is_read_only is not None:
            logger.debug("Ignoring hidden/read-only metadata for %s, not supported over FTP", path)

        return (yield from self.get_info(path))
