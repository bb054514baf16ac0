"""
FTP filesystem facade.

Every operation exists in a blocking form and an ``_async`` form with the
same semantics. Both forms serialize through one ExclusiveLock per
filesystem, so a thread and a coroutine never interleave exchanges on the
connection.

Do not call the blocking forms from the event loop thread while coroutines
may hold the lock: the loop would block waiting for itself.
"""

import inspect
import logging
from functools import wraps

from .async_ftp_client import AsyncFTPClient
from .config import ConnectionConfig, FTPConfig, PermissionConfig, parse_address
from .connection import ConnectionManager
from .engine import run_plan, run_plan_async
from .exceptions import UnsupportedOperationError
from .ftp_client import FTPClient
from .hashing import HashResolution, HashResolver
from .locking import ExclusiveLock
from .metadata import FileAccess, LinkInfo, LinkMetadata, ListingOptions
from .operations import FTPOperations
from .streams import AsyncNotifyOnCloseStream, NotifyOnCloseStream

logger = logging.getLogger(__name__)


def operation(fn):
    """Decorator for filesystem operations - logs the outcome of each call."""
    name = fn.__name__

    if inspect.iscoroutinefunction(fn):

        @wraps(fn)
        async def async_wrapper(self, *args, **kwargs):
            try:
                result = await fn(self, *args, **kwargs)
                logger.debug("%s: OK", name)
                return result
            except Exception as exc:
                logger.debug("%s: FAIL - %s", name, exc)
                raise

        return async_wrapper

    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            result = fn(self, *args, **kwargs)
            logger.debug("%s: OK", name)
            return result
        except Exception as exc:
            logger.debug("%s: FAIL - %s", name, exc)
            raise

    return wrapper


class FTPFileSystem:
    """
    Synchronized file operations on one FTP server.

    The blocking and async forms use separate connections (ftplib and
    aioftp), each created on first use and reconnected after a failure.
    """

    kind = "ftp"
    supports_hidden_metadata = False
    supports_read_only_metadata = False
    supports_last_write_time_metadata = True

    def __init__(
        self,
        ftp_config: FTPConfig,
        conn_config: ConnectionConfig | None = None,
        permissions: PermissionConfig | None = None,
        client_factory=FTPClient,
        async_client_factory=AsyncFTPClient,
    ):
        self.ftp_config = ftp_config
        self.conn_config = conn_config or ConnectionConfig()
        self.permissions = permissions or PermissionConfig()

        self._lock = ExclusiveLock()
        self._connections = ConnectionManager(
            self.ftp_config, self.conn_config, client_factory, async_client_factory
        )
        self._hash_resolver = HashResolver()
        self._ops = FTPOperations(
            self._hash_resolver, hash_source=self, policy=self.permissions.policy
        )

        logger.info(
            "FTPFileSystem initialized for %s:%d (permissions=%s)",
            self.ftp_config.host,
            self.ftp_config.port,
            self.permissions.policy.value,
        )

    @property
    def name(self) -> str:
        return self.ftp_config.host

    @property
    def closed(self) -> bool:
        return self._connections.closed

    def _execute(self, plan):
        try:
            with self._lock:
                client = self._connections.acquire_connection()
                return run_plan(plan, client)
        finally:
            plan.close()

    async def _execute_async(self, plan):
        try:
            async with self._lock:
                client = await self._connections.acquire_connection_async()
                return await run_plan_async(plan, client)
        finally:
            plan.close()

    # -- files --------------------------------------------------------------

    @operation
    def read_file(self, path: str, sink) -> None:
        """Copy the remote file at path into the writable binary sink."""
        self._execute(self._ops.read_file(path, sink))

    @operation
    async def read_file_async(self, path: str, sink) -> None:
        await self._execute_async(self._ops.read_file(path, sink))

    @operation
    def write_file(self, path: str, source, overwrite: bool = False) -> LinkInfo | None:
        """
        Upload the readable binary source to path.

        Raises:
            ConflictError: If overwrite is False and path already exists.
        """
        return self._execute(self._ops.write_file(path, source, overwrite))

    @operation
    async def write_file_async(self, path: str, source, overwrite: bool = False) -> LinkInfo | None:
        return await self._execute_async(self._ops.write_file(path, source, overwrite))

    def get_supported_direct_access(self, path: str) -> FileAccess:
        return FileAccess.READ

    @operation
    def open_file(self, path: str, access: FileAccess = FileAccess.READ) -> NotifyOnCloseStream:
        """
        Open path for streaming reads.

        The returned stream holds the filesystem lock until it is closed;
        every other operation waits for it.
        """
        if access is not FileAccess.READ:
            raise UnsupportedOperationError(f"Only read access is supported, got {access.name}")

        self._lock.acquire()
        try:
            client = self._connections.acquire_connection()
            handle = run_plan(self._ops.open_read(path), client)
        except BaseException:
            self._lock.release()
            raise

        def finish(reached_eof: bool) -> None:
            try:
                run_plan(self._ops.finish_read(path, reached_eof), client)
            finally:
                self._lock.release()

        return NotifyOnCloseStream(handle, finish)

    @operation
    async def open_file_async(
        self, path: str, access: FileAccess = FileAccess.READ
    ) -> AsyncNotifyOnCloseStream:
        if access is not FileAccess.READ:
            raise UnsupportedOperationError(f"Only read access is supported, got {access.name}")

        await self._lock.acquire_async()
        try:
            client = await self._connections.acquire_connection_async()
            handle = await run_plan_async(self._ops.open_read(path), client)
        except BaseException:
            self._lock.release()
            raise

        async def finish(reached_eof: bool) -> None:
            try:
                await run_plan_async(self._ops.finish_read(path, reached_eof), client)
            finally:
                self._lock.release()

        return AsyncNotifyOnCloseStream(handle, finish)

    @operation
    def move_file(self, source: str, destination: str, overwrite: bool = False) -> LinkInfo | None:
        return self._execute(self._ops.move_file(source, destination, overwrite))

    @operation
    async def move_file_async(
        self, source: str, destination: str, overwrite: bool = False
    ) -> LinkInfo | None:
        return await self._execute_async(self._ops.move_file(source, destination, overwrite))

    @operation
    def delete_file(self, path: str) -> None:
        self._execute(self._ops.delete_file(path))

    @operation
    async def delete_file_async(self, path: str) -> None:
        await self._execute_async(self._ops.delete_file(path))

    # -- directories --------------------------------------------------------

    @operation
    def create_directory(self, path: str) -> LinkInfo | None:
        """Create path and any missing parents."""
        return self._execute(self._ops.create_directory(path))

    @operation
    async def create_directory_async(self, path: str) -> LinkInfo | None:
        return await self._execute_async(self._ops.create_directory(path))

    @operation
    def move_directory(self, source: str, destination: str) -> LinkInfo | None:
        return self._execute(self._ops.move_directory(source, destination))

    @operation
    async def move_directory_async(self, source: str, destination: str) -> LinkInfo | None:
        return await self._execute_async(self._ops.move_directory(source, destination))

    @operation
    def delete_directory(self, path: str, recursive: bool = False) -> None:
        """
        Remove the directory at path.

        Raises:
            NotEmptyError: If recursive is False and the directory has entries.
        """
        self._execute(self._ops.delete_directory(path, recursive))

    @operation
    async def delete_directory_async(self, path: str, recursive: bool = False) -> None:
        await self._execute_async(self._ops.delete_directory(path, recursive))

    @operation
    def list_directory(self, path: str, options: ListingOptions | None = None) -> list[LinkInfo]:
        """Entries of path in server order. Symbolic links are left out."""
        return self._execute(self._ops.list_directory(path, options or ListingOptions()))

    @operation
    async def list_directory_async(
        self, path: str, options: ListingOptions | None = None
    ) -> list[LinkInfo]:
        return await self._execute_async(self._ops.list_directory(path, options or ListingOptions()))

    # -- metadata -----------------------------------------------------------

    @operation
    def update_metadata(self, path: str, metadata: LinkMetadata) -> LinkInfo | None:
        """Apply the modification time from metadata. Other fields are ignored."""
        return self._execute(self._ops.update_metadata(path, metadata))

    @operation
    async def update_metadata_async(self, path: str, metadata: LinkMetadata) -> LinkInfo | None:
        return await self._execute_async(self._ops.update_metadata(path, metadata))

    @operation
    def get_link_info(self, path: str) -> LinkInfo | None:
        """Describe path, or return None if it is missing or the server is unreachable."""
        try:
            return self._execute(self._ops.get_info(path))
        except OSError as exc:
            logger.debug("get_link_info(%s) unavailable: %s", path, exc)
            return None

    @operation
    async def get_link_info_async(self, path: str) -> LinkInfo | None:
        try:
            return await self._execute_async(self._ops.get_info(path))
        except OSError as exc:
            logger.debug("get_link_info(%s) unavailable: %s", path, exc)
            return None

    @operation
    def resolve_hash(self, path: str) -> HashResolution:
        """
        Ask the server for the content hash of path.

        Never raises for remote errors. Once the server has rejected the hash
        command as unknown, no further requests are sent.
        """
        if not self._hash_resolver.supported:
            return HashResolution(None, supported=False)
        try:
            return self._execute(self._ops.resolve_hash(path))
        except OSError as exc:
            logger.debug("resolve_hash(%s) unavailable: %s", path, exc)
            return HashResolution(None, supported=self._hash_resolver.supported)

    @operation
    async def resolve_hash_async(self, path: str) -> HashResolution:
        if not self._hash_resolver.supported:
            return HashResolution(None, supported=False)
        try:
            return await self._execute_async(self._ops.resolve_hash(path))
        except OSError as exc:
            logger.debug("resolve_hash(%s) unavailable: %s", path, exc)
            return HashResolution(None, supported=self._hash_resolver.supported)

    def has_read_access(self, info: LinkInfo | None) -> bool:
        return True if info is None else info.can_read

    def has_write_access(self, info: LinkInfo | None) -> bool:
        return True if info is None else info.can_write

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """
        Disconnect from the server. Safe to call more than once.

        Waits for running operations, including open read streams, to finish.
        """
        if self._connections.closed:
            return
        with self._lock:
            self._connections.close()

    async def aclose(self) -> None:
        if self._connections.closed:
            return
        async with self._lock:
            await self._connections.aclose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


def create_filesystem(
    address: str,
    username: str | None = None,
    password: str | None = None,
    encoding: str | None = None,
    passive_mode: bool = True,
    conn_config: ConnectionConfig | None = None,
    permissions: PermissionConfig | None = None,
) -> FTPFileSystem:
    """
    Build an FTPFileSystem from an address such as ``ftp://host:2121``.

    No connection is made until the first operation.
    """
    host, port = parse_address(address)
    ftp_config = FTPConfig(
        host=host,
        port=port,
        username=username,
        password=password,
        passive_mode=passive_mode,
        encoding=encoding or "utf-8",
    )
    return FTPFileSystem(ftp_config, conn_config, permissions)
