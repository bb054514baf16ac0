import ftplib
import logging
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntFlag
from typing import BinaryIO

from .config import ConnectionConfig, FTPConfig
from .exceptions import FTPCommandError

logger = logging.getLogger(__name__)

# Placeholder the transport reports for a timestamp the server did not send
DATETIME_UNSET = datetime.min

BLOCK_SIZE = 64 * 1024

# Non-seekable upload sources are buffered in memory up to this size, then on disk
SPOOL_MAX_MEMORY = 8 * 1024 * 1024


class ObjectType(Enum):
    FILE = "file"
    DIRECTORY = "dir"
    LINK = "link"


class Permission(IntFlag):
    """Owner permission bits as reported by the server (0 = not reported)."""

    NONE = 0
    EXECUTE = 1
    WRITE = 2
    READ = 4


class Capability(str, Enum):
    MLSD = "MLSD"
    MLST = "MLST"
    MFMT = "MFMT"
    HASH = "HASH"
    XCRC = "XCRC"
    XMD5 = "XMD5"
    XSHA1 = "XSHA1"
    XSHA256 = "XSHA256"
    XSHA512 = "XSHA512"


class RemoteExists(Enum):
    OVERWRITE = "overwrite"
    SKIP = "skip"


class UploadStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"


@dataclass
class RawEntry:
    """One directory entry exactly as the server described it."""

    name: str
    full_name: str
    type: ObjectType
    size: int = 0
    created: datetime = DATETIME_UNSET
    modified: datetime = DATETIME_UNSET
    owner_permissions: Permission = Permission.NONE


@dataclass(frozen=True)
class ChecksumReply:
    algorithm: str
    value: str
    is_valid: bool


# Legacy single-algorithm commands, strongest first
LEGACY_HASH_COMMANDS = (
    (Capability.XSHA512, "SHA-512"),
    (Capability.XSHA256, "SHA-256"),
    (Capability.XSHA1, "SHA-1"),
    (Capability.XMD5, "MD5"),
    (Capability.XCRC, "CRC32"),
)

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


def normalize_path(path: str) -> str:
    """Ensure path has leading slash and uses forward slashes."""
    path = path.replace("\\", "/")
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def join_path(directory: str, name: str) -> str:
    if not name:
        return directory
    if not directory:
        return name
    if directory.endswith("/"):
        return directory + name
    return directory + "/" + name


def parent_path(path: str) -> str:
    parent = path.rstrip("/").rsplit("/", 1)[0]
    return parent or "/"


@contextmanager
def rewindable(source: BinaryIO):
    """
    Yield ``(stream, start)`` such that seeking stream to start replays the
    whole upload. Non-seekable sources are copied into a spooled temporary
    file first, so a retried transfer never resumes mid-stream.
    """
    if source.seekable():
        yield source, source.tell()
        return

    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
        shutil.copyfileobj(source, spool, BLOCK_SIZE)
        logger.debug("Buffered %d bytes of non-seekable upload source", spool.tell())
        spool.seek(0)
        yield spool, 0


def translate_reply(code: str, message: str) -> Exception:
    """Translate a permanent FTP reply to a standard Python exception."""
    text = message.lower()

    if code == "550":
        if "permission" in text or "denied" in text:
            return PermissionError(f"{code} {message}")
        if "not empty" in text:
            return FTPCommandError(code, message)
        # Default to FileNotFoundError for 550
        return FileNotFoundError(f"{code} {message}")
    if code == "553":
        return PermissionError(f"{code} {message}")
    if code == "530":
        return PermissionError(f"Authentication required: {code} {message}")
    return FTPCommandError(code, message)


def parse_feat_lines(lines) -> set[str]:
    """Collect the feature keywords from a FEAT reply."""
    features = set()
    for line in lines:
        line = line.strip()
        if not line or line[:3].isdigit():
            continue
        features.add(line.split()[0].upper())
    return features


def parse_mlsx_time(time_str: str | None) -> datetime:
    """Parse MLSx time format (YYYYMMDDHHmmSS or YYYYMMDDHHmmSS.sss), always UTC."""
    if not time_str:
        return DATETIME_UNSET

    try:
        # Remove fractional seconds if present
        if "." in time_str:
            time_str = time_str.split(".")[0]
        return datetime.strptime(time_str, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning("Failed to parse MLSx time: %s", time_str)
        return DATETIME_UNSET


def _permissions_from_facts(facts: dict, is_dir: bool) -> Permission:
    mode = facts.get("unix.mode")
    if mode not in (None, ""):
        try:
            bits = mode if isinstance(mode, int) else int(str(mode), 8)
            return Permission((bits >> 6) & 0o7)
        except ValueError:
            logger.debug("Ignoring malformed unix.mode fact: %s", mode)

    perm = facts.get("perm")
    if not perm:
        return Permission.NONE

    perm = perm.lower()
    result = Permission.NONE
    if ("l" in perm or "e" in perm) if is_dir else "r" in perm:
        result |= Permission.READ
    if any(flag in perm for flag in ("w", "a", "c", "m")):
        result |= Permission.WRITE
    if is_dir and "e" in perm:
        result |= Permission.EXECUTE
    return result


def entry_from_facts(name: str, full_name: str, facts: dict) -> RawEntry | None:
    """Build a RawEntry from MLSD/MLST facts (keys lowercased)."""
    kind = str(facts.get("type", "")).lower()
    if kind in ("cdir", "pdir") or name in (".", ".."):
        return None

    if kind == "dir":
        object_type = ObjectType.DIRECTORY
    elif kind == "link" or kind.startswith("os.unix=slink") or kind.startswith("os.unix=symlink"):
        object_type = ObjectType.LINK
    else:
        object_type = ObjectType.FILE

    is_dir = object_type is ObjectType.DIRECTORY
    try:
        size = int(facts.get("size", 0) or 0) if not is_dir else 0
    except ValueError:
        size = 0

    return RawEntry(
        name=name,
        full_name=full_name,
        type=object_type,
        size=size,
        created=parse_mlsx_time(facts.get("create")),
        modified=parse_mlsx_time(facts.get("modify")),
        owner_permissions=_permissions_from_facts(facts, is_dir),
    )


def parse_checksum_reply(response: str, algorithm: str | None = None) -> ChecksumReply | None:
    """
    Parse a HASH (``213 SHA-256 0-49 <hex> name``) or legacy X-command
    (``250 <hex>``) reply. ``algorithm`` is given for legacy replies.
    """
    text = response.strip()
    if text[:3].isdigit():
        text = text[4:].strip()
    if not text:
        return None

    if algorithm is None:
        parts = text.split(" ", 3)
        if len(parts) < 3:
            return None
        algorithm, value = parts[0], parts[2]
    else:
        value = text.split()[0]

    value = value.strip()
    is_valid = bool(value) and all(c in "0123456789abcdefABCDEF" for c in value)
    return ChecksumReply(algorithm=algorithm, value=value.lower(), is_valid=is_valid)


def _parse_unix_list_time(time_parts: list[str]) -> datetime:
    """Parse Unix LIST time format (e.g., 'Dec 10 12:34' or 'Dec 10  2020')."""
    if len(time_parts) < 3:
        return DATETIME_UNSET

    month_str, day_str, time_or_year = time_parts[0], time_parts[1], time_parts[2]

    try:
        month = _MONTHS.get(month_str.lower(), 1)
        day = int(day_str)

        if ":" in time_or_year:
            # Time format - assume current year
            hour, minute = map(int, time_or_year.split(":"))
            year = datetime.now(timezone.utc).year
        else:
            year = int(time_or_year)
            hour, minute = 0, 0

        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return DATETIME_UNSET


def _parse_unix_list_line(directory: str, parts: list[str], line: str) -> RawEntry | None:
    """Parse Unix-style LIST output."""
    try:
        kind = parts[0][0]
        if kind == "d":
            object_type = ObjectType.DIRECTORY
        elif kind == "l":
            object_type = ObjectType.LINK
        else:
            object_type = ObjectType.FILE
        size = int(parts[4]) if object_type is not ObjectType.DIRECTORY else 0

        # Filename follows size and the three date/time fields
        name = line.split(None, 8)[8].strip()
        if object_type is ObjectType.LINK and " -> " in name:
            name = name.split(" -> ", 1)[0]

        owner = parts[0][1:4]
        permissions = Permission.NONE
        if owner[0] == "r":
            permissions |= Permission.READ
        if owner[1] == "w":
            permissions |= Permission.WRITE
        if owner[2] in "xs":
            permissions |= Permission.EXECUTE

        return RawEntry(
            name=name,
            full_name=join_path(directory, name),
            type=object_type,
            size=size,
            modified=_parse_unix_list_time(parts[5:8]),
            owner_permissions=permissions,
        )
    except (IndexError, ValueError) as e:
        logger.warning("Failed to parse Unix LIST line: %s - %s", line, e)
        return None


def _parse_windows_list_time(date_str: str, time_str: str) -> datetime:
    """Parse Windows LIST time format (MM-DD-YY HH:MMAM/PM)."""
    try:
        month, day, year = map(int, date_str.split("-"))
        if year < 100:
            year += 2000 if year < 70 else 1900

        time_str = time_str.upper()
        is_pm = "PM" in time_str
        time_str = time_str.replace("AM", "").replace("PM", "")
        hour, minute = map(int, time_str.split(":"))

        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0

        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except (ValueError, IndexError):
        return DATETIME_UNSET


def _parse_windows_list_line(directory: str, parts: list[str], line: str) -> RawEntry | None:
    """Parse Windows-style LIST output."""
    try:
        # Format: MM-DD-YY  HH:MMPM  <DIR>  dirname
        # Format: MM-DD-YY  HH:MMPM  size  filename
        is_dir = parts[2] == "<DIR>"
        size = 0 if is_dir else int(parts[2])
        name = line.split(None, 3)[3].strip()

        return RawEntry(
            name=name,
            full_name=join_path(directory, name),
            type=ObjectType.DIRECTORY if is_dir else ObjectType.FILE,
            size=size,
            modified=_parse_windows_list_time(parts[0], parts[1]),
        )
    except (IndexError, ValueError) as e:
        logger.warning("Failed to parse Windows LIST line: %s - %s", line, e)
        return None


def parse_list_line(directory: str, line: str) -> RawEntry | None:
    """
    Parse a single line from LIST output.
    Handles both Unix and Windows FTP server formats.
    """
    line = line.strip()
    if not line:
        return None

    parts = line.split()
    if len(parts) < 4:
        return None

    # Unix format starts with permissions like drwxr-xr-x or -rw-r--r--
    if len(parts[0]) >= 10 and parts[0][0] in "dl-":
        entry = _parse_unix_list_line(directory, parts, line)
    # Windows format starts with a date like MM-DD-YY
    elif "-" in parts[0] and len(parts[0]) <= 10:
        entry = _parse_windows_list_line(directory, parts, line)
    else:
        logger.warning("Unknown LIST format: %s", line)
        return None

    if entry is None or entry.name in (".", ".."):
        return None
    return entry


class _DataChannel:
    """Binary reader over an open RETR data connection."""

    def __init__(self, conn):
        self._conn = conn
        self._file = conn.makefile("rb")

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def close(self) -> None:
        try:
            self._file.close()
        finally:
            self._conn.close()


class FTPClient:
    """
    High-level wrapper around ftplib.FTP with reconnection,
    retry logic, and the primitives used by FTPFileSystem.

    Not thread-safe: callers serialize access to one instance.
    """

    def __init__(self, ftp_config: FTPConfig, conn_config: ConnectionConfig):
        self.ftp_config = ftp_config
        self.conn_config = conn_config
        self._ftp: ftplib.FTP | None = None
        self._connected = False
        self._features: set[str] = set()

    @property
    def is_connected(self) -> bool:
        return self._connected and self._ftp is not None and self._ftp.sock is not None

    def connect(self) -> None:
        """
        Establish the connection to the FTP server.
        Handles authentication, passive mode, and capability probing.

        Raises:
            PermissionError: If the login is rejected.
            TimeoutError: If the server does not answer in time.
            ConnectionError: If the server cannot be reached.
        """
        try:
            self._ftp = ftplib.FTP()
            self._ftp.encoding = self.ftp_config.encoding

            logger.debug(
                "Connecting to FTP server %s:%d", self.ftp_config.host, self.ftp_config.port
            )

            self._ftp.connect(
                host=self.ftp_config.host,
                port=self.ftp_config.port,
                timeout=self.conn_config.timeout_seconds,
            )

            # Login - anonymous if no credentials
            if self.ftp_config.username:
                logger.debug("Logging in as user: %s", self.ftp_config.username)
                self._ftp.login(
                    user=self.ftp_config.username, passwd=self.ftp_config.password or ""
                )
            else:
                logger.debug("Logging in anonymously")
                self._ftp.login()

            self._ftp.set_pasv(self.ftp_config.passive_mode)
            logger.debug("Passive mode: %s", self.ftp_config.passive_mode)

            self._connected = True
            logger.info("Connected to FTP server %s:%d", self.ftp_config.host, self.ftp_config.port)

            self._read_capabilities()

        except (ftplib.error_perm, ftplib.error_temp) as e:
            self._connected = False
            self._ftp = None
            logger.error("FTP login failed: %s", e)
            raise PermissionError(f"FTP login failed: {e}") from e
        except TimeoutError as e:
            self._connected = False
            self._ftp = None
            logger.error("Connection timeout: %s", e)
            raise TimeoutError(f"Connection timeout: {e}") from e
        except (OSError, EOFError) as e:
            self._connected = False
            self._ftp = None
            logger.error("Connection failed: %s", e)
            raise ConnectionError(f"Connection failed: {e}") from e

    def _read_capabilities(self) -> None:
        """Read the FEAT reply; a server without FEAT has no optional features."""
        try:
            resp = self._ftp.sendcmd("FEAT")
            self._features = parse_feat_lines(resp.splitlines())
        except ftplib.error_perm:
            self._features = set()

        logger.debug("Server capabilities: %s", ", ".join(sorted(self._features)) or "none")

    def has_feature(self, capability: Capability | str) -> bool:
        name = capability.value if isinstance(capability, Capability) else capability
        return name.upper() in self._features

    def disconnect(self) -> None:
        """Safely close the connection."""
        if self._ftp:
            try:
                self._ftp.quit()
                logger.debug("FTP connection closed gracefully")
            except Exception as e:
                logger.debug("FTP quit failed, forcing close: %s", e)
                self._ftp.close()
            finally:
                self._ftp = None
                self._connected = False

    def discard(self) -> None:
        """Drop the connection without QUIT; the control channel state is unknown."""
        if self._ftp:
            logger.debug("Discarding FTP connection")
            try:
                self._ftp.close()
            finally:
                self._ftp = None
                self._connected = False

    def _ensure_connected(self) -> None:
        """Ensure connection is active, reconnect if needed."""
        if not self.is_connected:
            logger.debug("Connection not active, reconnecting")
            self.connect()

    def _with_retry(self, operation: str, func, *args, **kwargs):
        """
        Execute a function with retry logic.

        Args:
            operation: Description of the operation for logging
            func: Function to execute
            *args, **kwargs: Arguments to pass to the function

        Returns:
            Result of the function

        Raises:
            The translated permanent error, or OSError once all retries fail
        """
        last_exception = None

        for attempt in range(self.conn_config.retry_attempts):
            try:
                self._ensure_connected()
                return func(*args, **kwargs)
            except ftplib.error_perm as e:
                # Permanent errors should not be retried
                raise self._translate_ftp_error(e) from e
            except ftplib.error_reply as e:
                raise self._translate_ftp_error(e) from e
            except (TimeoutError, ftplib.error_temp, OSError, EOFError) as e:
                if isinstance(e, (FileNotFoundError, PermissionError, FTPCommandError)):
                    raise
                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    operation,
                    attempt + 1,
                    self.conn_config.retry_attempts,
                    e,
                )

                # Force reconnect on next attempt
                self.discard()
                if attempt < self.conn_config.retry_attempts - 1:
                    time.sleep(self.conn_config.retry_delay_seconds)

        logger.error("%s failed after %d attempts", operation, self.conn_config.retry_attempts)
        if isinstance(last_exception, TimeoutError):
            raise TimeoutError(f"{operation} timed out") from last_exception
        if isinstance(last_exception, ConnectionError):
            raise last_exception
        raise OSError(f"{operation} failed: {last_exception}") from last_exception

    def _translate_ftp_error(self, error: ftplib.Error) -> Exception:
        text = str(error)
        code = text[:3] if len(text) >= 3 and text[:3].isdigit() else ""
        return translate_reply(code, text[4:] if code else text)

    # -- reading ------------------------------------------------------------

    def open_read(self, path: str) -> _DataChannel:
        """Start a RETR transfer; the reply must be collected with get_reply()."""
        path = normalize_path(path)
        logger.debug("Opening read stream: %s", path)

        def _open_read_internal() -> _DataChannel:
            self._ftp.voidcmd("TYPE I")
            return _DataChannel(self._ftp.transfercmd(f"RETR {path}"))

        return self._with_retry(f"open_read({path})", _open_read_internal)

    def copy_stream(self, handle: _DataChannel, sink: BinaryIO) -> int:
        total = 0
        while True:
            block = handle.read(BLOCK_SIZE)
            if not block:
                break
            sink.write(block)
            total += len(block)
        logger.debug("Transferred %d bytes", total)
        return total

    def get_reply(self) -> str:
        """Read the final reply of a transfer opened with open_read()."""
        try:
            return self._ftp.voidresp()
        except (ftplib.error_perm, ftplib.error_reply) as e:
            raise self._translate_ftp_error(e) from e
        except ftplib.error_temp as e:
            raise OSError(f"Transfer failed: {e}") from e

    # -- writing ------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self.get_object_info(path) is not None

    def upload_stream(self, path: str, source: BinaryIO, mode: RemoteExists) -> UploadStatus:
        """Upload a binary stream to path, honouring the existing-file mode."""
        path = normalize_path(path)
        logger.debug("Uploading stream to %s (mode=%s)", path, mode.value)

        if mode is RemoteExists.SKIP and self.exists(path):
            logger.debug("Upload skipped, %s already exists", path)
            return UploadStatus.SKIPPED

        with rewindable(source) as (stream, start):

            def _upload_internal() -> UploadStatus:
                stream.seek(start)
                self._ftp.storbinary(f"STOR {path}", stream, blocksize=BLOCK_SIZE)
                return UploadStatus.SUCCESS

            return self._with_retry(f"upload_stream({path})", _upload_internal)

    def move_file(self, source: str, destination: str, mode: RemoteExists) -> bool:
        """Rename a file. Returns False if destination exists and mode is SKIP."""
        source = normalize_path(source)
        destination = normalize_path(destination)

        target = self.get_object_info(destination)
        if target is not None:
            if mode is RemoteExists.SKIP:
                logger.debug("Move skipped, %s already exists", destination)
                return False
            self.delete_file(destination)

        self._rename(source, destination)
        return True

    def move_directory(self, source: str, destination: str) -> None:
        self._rename(normalize_path(source), normalize_path(destination))

    def _rename(self, old_path: str, new_path: str) -> None:
        logger.debug("Renaming: %s -> %s", old_path, new_path)

        def _rename_internal() -> None:
            self._ftp.rename(old_path, new_path)

        self._with_retry(f"rename({old_path}, {new_path})", _rename_internal)

    def delete_file(self, path: str) -> None:
        path = normalize_path(path)
        logger.debug("Deleting file: %s", path)

        def _delete_file_internal() -> None:
            self._ftp.delete(path)

        self._with_retry(f"delete_file({path})", _delete_file_internal)

    def create_directory(self, path: str) -> None:
        """Create a directory (recursively if needed)."""
        path = normalize_path(path)
        logger.debug("Creating directory: %s", path)

        def _create_dir_internal() -> None:
            try:
                self._ftp.mkd(path)
                return
            except ftplib.error_perm as e:
                # Directory might already exist, or parent doesn't exist
                error_str = str(e).lower()
                if "exists" in error_str or "already" in error_str:
                    logger.debug("Directory already exists: %s", path)
                    return

            current = ""
            for part in path.strip("/").split("/"):
                current = current + "/" + part
                try:
                    self._ftp.mkd(current)
                    logger.debug("Created directory: %s", current)
                except ftplib.error_perm as e:
                    error_str = str(e).lower()
                    if "exists" not in error_str and "already" not in error_str:
                        raise

        self._with_retry(f"create_directory({path})", _create_dir_internal)

    def delete_directory(self, path: str) -> None:
        """Delete a directory together with everything below it."""
        path = normalize_path(path)
        logger.debug("Deleting directory: %s", path)

        for entry in self.get_listing(path):
            if entry.type is ObjectType.DIRECTORY:
                self.delete_directory(entry.full_name)
            else:
                self.delete_file(entry.full_name)

        def _delete_dir_internal() -> None:
            self._ftp.rmd(path)

        self._with_retry(f"delete_directory({path})", _delete_dir_internal)

    def set_modified_time(self, path: str, value: datetime) -> None:
        path = normalize_path(path)
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        stamp = value.strftime("%Y%m%d%H%M%S")
        command = "MFMT" if self.has_feature(Capability.MFMT) else "MDTM"
        logger.debug("Setting modified time of %s to %s via %s", path, stamp, command)

        def _set_time_internal() -> None:
            self._ftp.sendcmd(f"{command} {stamp} {path}")

        self._with_retry(f"set_modified_time({path})", _set_time_internal)

    # -- metadata -----------------------------------------------------------

    def get_listing(self, path: str, recursive: bool = False) -> list[RawEntry]:
        """
        List contents of a directory.

        Args:
            path: Absolute FTP path.
            recursive: Descend into subdirectories (links are not followed).

        Returns:
            List[RawEntry]: Entries in server order, parents before children.
        """
        path = normalize_path(path)
        logger.debug("Listing directory: %s (recursive=%s)", path, recursive)

        def _list_internal() -> list[RawEntry]:
            if self.has_feature(Capability.MLSD):
                return self._list_dir_mlsd(path)
            return self._list_dir_list(path)

        entries = self._with_retry(f"get_listing({path})", _list_internal)
        if not recursive:
            return entries

        results = []
        for entry in entries:
            results.append(entry)
            if entry.type is ObjectType.DIRECTORY:
                results.extend(self.get_listing(entry.full_name, recursive=True))
        return results

    def _list_dir_mlsd(self, path: str) -> list[RawEntry]:
        results = []
        for name, facts in self._ftp.mlsd(path):
            entry = entry_from_facts(name, join_path(path, name), facts)
            if entry is not None:
                results.append(entry)

        logger.debug("MLSD listed %d entries in %s", len(results), path)
        return results

    def _list_dir_list(self, path: str) -> list[RawEntry]:
        lines = []
        self._ftp.cwd(path)
        self._ftp.retrlines("LIST", lines.append)

        results = []
        for line in lines:
            entry = parse_list_line(path, line)
            if entry is not None:
                results.append(entry)

        logger.debug("LIST listed %d entries in %s", len(results), path)
        return results

    def get_object_info(self, path: str) -> RawEntry | None:
        """
        Get metadata for a single file or directory.

        Returns:
            RawEntry, or None if the server reports that path does not exist.
        """
        path = normalize_path(path)
        logger.debug("Getting object info: %s", path)

        def _get_info_internal() -> RawEntry | None:
            if self.has_feature(Capability.MLST):
                return self._get_info_mlst(path)
            return self._get_info_list(path)

        try:
            return self._with_retry(f"get_object_info({path})", _get_info_internal)
        except FileNotFoundError:
            return None

    def _get_info_mlst(self, path: str) -> RawEntry | None:
        # Response format:
        # 250-Listing path
        #  type=file;size=1234;modify=20201210123456; filename
        # 250 End
        response = self._ftp.sendcmd(f"MLST {path}")

        for line in response.splitlines()[1:]:
            if not line.startswith(" "):
                continue
            facts_part, _, _ = line[1:].partition(" ")
            facts = {}
            for fact in facts_part.rstrip(";").split(";"):
                key, _, value = fact.partition("=")
                if key:
                    facts[key.lower()] = value
            if facts.get("type", "").lower() in ("cdir", "pdir"):
                facts["type"] = "dir"
            name = path.rsplit("/", 1)[-1] or "/"
            return entry_from_facts(name, path, facts)

        raise FileNotFoundError(f"Could not parse MLST response for {path}")

    def _get_info_list(self, path: str) -> RawEntry | None:
        if path == "/":
            return RawEntry(name="/", full_name="/", type=ObjectType.DIRECTORY)

        name = path.rsplit("/", 1)[-1]
        for entry in self._list_dir_list(parent_path(path)):
            if entry.name == name:
                return entry
        return None

    def get_checksum(self, path: str) -> ChecksumReply | None:
        """
        Ask the server for a content hash of path.

        HASH is tried unless the server only advertises the legacy X-commands.
        A server that understands neither answers 500, which is raised as
        FTPCommandError for the caller to interpret.
        """
        path = normalize_path(path)
        logger.debug("Requesting checksum: %s", path)

        def _checksum_internal() -> ChecksumReply | None:
            if not self.has_feature(Capability.HASH):
                for capability, algorithm in LEGACY_HASH_COMMANDS:
                    if self.has_feature(capability):
                        response = self._ftp.sendcmd(f"{capability.value} {path}")
                        return parse_checksum_reply(response, algorithm)
            return parse_checksum_reply(self._ftp.sendcmd(f"HASH {path}"))

        return self._with_retry(f"get_checksum({path})", _checksum_internal)
