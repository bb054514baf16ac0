"""
Async FTP client implementation using aioftp.

Provides the same primitives as FTPClient for coroutine callers, so that
FTPFileSystem can serve its async operations without a worker thread.
"""

import asyncio
import logging
import pathlib
from datetime import datetime, timezone
from typing import BinaryIO

import aioftp

from .config import ConnectionConfig, FTPConfig
from .exceptions import FTPCommandError
from .ftp_client import (
    BLOCK_SIZE,
    LEGACY_HASH_COMMANDS,
    Capability,
    ChecksumReply,
    ObjectType,
    RawEntry,
    RemoteExists,
    UploadStatus,
    entry_from_facts,
    normalize_path,
    parse_checksum_reply,
    parse_feat_lines,
    rewindable,
    translate_reply,
)

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OSError, EOFError, asyncio.TimeoutError)


class AsyncFTPClient:
    """
    High-level wrapper around aioftp.Client with reconnection,
    retry logic, and the same primitives as FTPClient.

    Not task-safe: callers serialize access to one instance.
    """

    def __init__(self, ftp_config: FTPConfig, conn_config: ConnectionConfig):
        self.ftp_config = ftp_config
        self.conn_config = conn_config
        self._client: aioftp.Client | None = None
        self._connected = False
        self._features: set[str] = set()

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """
        Establish the connection to the FTP server.

        Raises:
            PermissionError: If the login is rejected.
            TimeoutError: If the server does not answer in time.
            ConnectionError: If the server cannot be reached.
        """
        if not self.ftp_config.passive_mode:
            logger.warning("Active mode is not available for async transfers, using passive")

        self._client = aioftp.Client(
            socket_timeout=self.conn_config.timeout_seconds,
            connection_timeout=self.conn_config.timeout_seconds,
            encoding=self.ftp_config.encoding,
        )
        try:
            logger.debug(
                "Connecting to FTP server %s:%d", self.ftp_config.host, self.ftp_config.port
            )
            await self._client.connect(self.ftp_config.host, self.ftp_config.port)

            if self.ftp_config.username:
                logger.debug("Logging in as user: %s", self.ftp_config.username)
                await self._client.login(self.ftp_config.username, self.ftp_config.password or "")
            else:
                logger.debug("Logging in anonymously")
                await self._client.login()

            self._connected = True
            logger.info("Connected to FTP server %s:%d", self.ftp_config.host, self.ftp_config.port)

            await self._read_capabilities()

        except aioftp.StatusCodeError as e:
            self._reset()
            logger.error("FTP login failed: %s", e)
            raise PermissionError(f"FTP login failed: {e}") from e
        except asyncio.TimeoutError as e:
            self._reset()
            logger.error("Connection timeout: %s", e)
            raise TimeoutError(f"Connection timeout: {e}") from e
        except (OSError, EOFError) as e:
            self._reset()
            logger.error("Connection failed: %s", e)
            raise ConnectionError(f"Connection failed: {e}") from e
        except BaseException:
            # Cancelled mid-handshake
            self._reset()
            raise

    async def _read_capabilities(self) -> None:
        try:
            _, info = await self._client.command("FEAT", "2xx")
            self._features = parse_feat_lines(info)
        except aioftp.StatusCodeError:
            self._features = set()

        logger.debug("Server capabilities: %s", ", ".join(sorted(self._features)) or "none")

    def has_feature(self, capability: Capability | str) -> bool:
        name = capability.value if isinstance(capability, Capability) else capability
        return name.upper() in self._features

    def _reset(self) -> None:
        client, self._client = self._client, None
        self._connected = False
        if client is None:
            return
        try:
            client.close()
        except RuntimeError as e:
            # The event loop that owned the socket has already been closed
            logger.debug("Dropping connection of a closed event loop: %s", e)

    async def disconnect(self) -> None:
        """Safely close the connection."""
        if self._client:
            try:
                await self._client.quit()
                logger.debug("FTP connection closed gracefully")
            except Exception as e:
                logger.debug("FTP quit failed, forcing close: %s", e)
            finally:
                self._reset()

    def discard(self) -> None:
        """Drop the connection without QUIT; the control channel state is unknown."""
        if self._client:
            logger.debug("Discarding FTP connection")
            self._reset()

    async def _ensure_connected(self) -> None:
        if not self.is_connected:
            logger.debug("Connection not active, reconnecting")
            await self.connect()

    async def _with_retry(self, operation: str, func, *args, **kwargs):
        """Await func with retry logic; permanent replies are raised at once."""
        last_exception = None

        for attempt in range(self.conn_config.retry_attempts):
            try:
                await self._ensure_connected()
                return await func(*args, **kwargs)
            except aioftp.StatusCodeError as e:
                error = self._translate_status_error(e)
                if not str(e.received_codes[-1]).startswith("4"):
                    raise error from e
                last_exception = error
            except _TRANSIENT_ERRORS as e:
                if isinstance(e, (FileNotFoundError, PermissionError, FTPCommandError)):
                    raise
                last_exception = e

            logger.warning(
                "%s failed (attempt %d/%d): %s",
                operation,
                attempt + 1,
                self.conn_config.retry_attempts,
                last_exception,
            )
            # Force reconnect on next attempt
            self.discard()
            if attempt < self.conn_config.retry_attempts - 1:
                await asyncio.sleep(self.conn_config.retry_delay_seconds)

        logger.error("%s failed after %d attempts", operation, self.conn_config.retry_attempts)
        if isinstance(last_exception, asyncio.TimeoutError):
            raise TimeoutError(f"{operation} timed out") from last_exception
        if isinstance(last_exception, ConnectionError):
            raise last_exception
        raise OSError(f"{operation} failed: {last_exception}") from last_exception

    def _translate_status_error(self, error: aioftp.StatusCodeError) -> Exception:
        code = str(error.received_codes[-1]) if error.received_codes else ""
        info = [error.info] if isinstance(error.info, str) else error.info
        message = " ".join(str(line).strip(" -") for line in info if str(line).strip())
        return translate_reply(code, message)

    # -- reading ------------------------------------------------------------

    async def open_read(self, path: str):
        """Start a RETR transfer; the reply must be collected with get_reply()."""
        path = normalize_path(path)
        logger.debug("Opening read stream: %s", path)

        async def _open_read_internal():
            return await self._client.download_stream(path)

        return await self._with_retry(f"open_read({path})", _open_read_internal)

    async def copy_stream(self, handle, sink: BinaryIO) -> int:
        total = 0
        async for block in handle.iter_by_block(BLOCK_SIZE):
            sink.write(block)
            total += len(block)
        logger.debug("Transferred %d bytes", total)
        return total

    async def get_reply(self) -> str:
        """Read the final reply of a transfer opened with open_read()."""
        try:
            code, _ = await self._client.command(None, "2xx", "1xx")
        except aioftp.StatusCodeError as e:
            raise self._translate_status_error(e) from e
        return str(code)

    # -- writing ------------------------------------------------------------

    async def exists(self, path: str) -> bool:
        return await self.get_object_info(path) is not None

    async def upload_stream(
        self, path: str, source: BinaryIO, mode: RemoteExists
    ) -> UploadStatus:
        """Upload a binary stream to path, honouring the existing-file mode."""
        path = normalize_path(path)
        logger.debug("Uploading stream to %s (mode=%s)", path, mode.value)

        if mode is RemoteExists.SKIP and await self.exists(path):
            logger.debug("Upload skipped, %s already exists", path)
            return UploadStatus.SKIPPED

        with rewindable(source) as (replay, start):

            async def _upload_internal() -> UploadStatus:
                replay.seek(start)
                async with self._client.upload_stream(path) as stream:
                    while True:
                        block = replay.read(BLOCK_SIZE)
                        if not block:
                            break
                        await stream.write(block)
                return UploadStatus.SUCCESS

            return await self._with_retry(f"upload_stream({path})", _upload_internal)

    async def move_file(self, source: str, destination: str, mode: RemoteExists) -> bool:
        """Rename a file. Returns False if destination exists and mode is SKIP."""
        source = normalize_path(source)
        destination = normalize_path(destination)

        target = await self.get_object_info(destination)
        if target is not None:
            if mode is RemoteExists.SKIP:
                logger.debug("Move skipped, %s already exists", destination)
                return False
            await self.delete_file(destination)

        await self._rename(source, destination)
        return True

    async def move_directory(self, source: str, destination: str) -> None:
        await self._rename(normalize_path(source), normalize_path(destination))

    async def _rename(self, old_path: str, new_path: str) -> None:
        logger.debug("Renaming: %s -> %s", old_path, new_path)

        async def _rename_internal() -> None:
            await self._client.rename(old_path, new_path)

        await self._with_retry(f"rename({old_path}, {new_path})", _rename_internal)

    async def delete_file(self, path: str) -> None:
        path = normalize_path(path)
        logger.debug("Deleting file: %s", path)

        async def _delete_file_internal() -> None:
            await self._client.remove_file(path)

        await self._with_retry(f"delete_file({path})", _delete_file_internal)

    async def create_directory(self, path: str) -> None:
        """Create a directory (recursively if needed)."""
        path = normalize_path(path)
        logger.debug("Creating directory: %s", path)

        async def _create_dir_internal() -> None:
            await self._client.make_directory(path, parents=True)

        await self._with_retry(f"create_directory({path})", _create_dir_internal)

    async def delete_directory(self, path: str) -> None:
        """Delete a directory together with everything below it."""
        path = normalize_path(path)
        logger.debug("Deleting directory: %s", path)

        for entry in await self.get_listing(path):
            if entry.type is ObjectType.DIRECTORY:
                await self.delete_directory(entry.full_name)
            else:
                await self.delete_file(entry.full_name)

        async def _delete_dir_internal() -> None:
            await self._client.remove_directory(path)

        await self._with_retry(f"delete_directory({path})", _delete_dir_internal)

    async def set_modified_time(self, path: str, value: datetime) -> None:
        path = normalize_path(path)
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        stamp = value.strftime("%Y%m%d%H%M%S")
        command = "MFMT" if self.has_feature(Capability.MFMT) else "MDTM"
        logger.debug("Setting modified time of %s to %s via %s", path, stamp, command)

        async def _set_time_internal() -> None:
            await self._client.command(f"{command} {stamp} {path}", "2xx")

        await self._with_retry(f"set_modified_time({path})", _set_time_internal)

    # -- metadata -----------------------------------------------------------

    async def get_listing(self, path: str, recursive: bool = False) -> list[RawEntry]:
        """
        List contents of a directory (MLSD, falling back to LIST).

        Recursive listings are walked depth-first, each directory followed by
        its subtree, in the same order as FTPClient.get_listing.
        """
        path = normalize_path(path)
        logger.debug("Listing directory: %s (recursive=%s)", path, recursive)

        async def _list_internal() -> list[RawEntry]:
            results = []
            async for item_path, facts in self._client.list(path):
                entry = entry_from_facts(item_path.name, str(item_path), facts)
                if entry is not None:
                    results.append(entry)
            return results

        entries = await self._with_retry(f"get_listing({path})", _list_internal)
        logger.debug("Listed %d entries in %s", len(entries), path)
        if not recursive:
            return entries

        results = []
        for entry in entries:
            results.append(entry)
            if entry.type is ObjectType.DIRECTORY:
                results.extend(await self.get_listing(entry.full_name, recursive=True))
        return results

    async def get_object_info(self, path: str) -> RawEntry | None:
        """Get metadata for a single file or directory, None if it does not exist."""
        path = normalize_path(path)
        logger.debug("Getting object info: %s", path)

        async def _get_info_internal() -> RawEntry | None:
            facts = dict(await self._client.stat(path))
            if str(facts.get("type", "")).lower() in ("cdir", "pdir"):
                facts["type"] = "dir"
            return entry_from_facts(pathlib.PurePosixPath(path).name or "/", path, facts)

        try:
            return await self._with_retry(f"get_object_info({path})", _get_info_internal)
        except FileNotFoundError:
            return None

    async def get_checksum(self, path: str) -> ChecksumReply | None:
        """Ask the server for a content hash of path (see FTPClient.get_checksum)."""
        path = normalize_path(path)
        logger.debug("Requesting checksum: %s", path)

        async def _checksum_internal() -> ChecksumReply | None:
            if not self.has_feature(Capability.HASH):
                for capability, algorithm in LEGACY_HASH_COMMANDS:
                    if self.has_feature(capability):
                        code, info = await self._client.command(
                            f"{capability.value} {path}", "2xx"
                        )
                        return parse_checksum_reply(f"{code} {info[0].strip()}", algorithm)
            code, info = await self._client.command(f"HASH {path}", "2xx")
            return parse_checksum_reply(f"{code} {info[0].strip()}")

        return await self._with_retry(f"get_checksum({path})", _checksum_internal)

