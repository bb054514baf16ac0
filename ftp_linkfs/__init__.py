__version__ = "0.3.0"

# Public API exports
from .async_ftp_client import AsyncFTPClient
from .config import (
    AppConfig,
    ConnectionConfig,
    FTPConfig,
    LogConfig,
    PermissionConfig,
    PermissionPolicy,
    load_config,
    parse_address,
)
from .exceptions import ConflictError, FTPCommandError, NotEmptyError, UnsupportedOperationError
from .filesystem import FTPFileSystem, create_filesystem
from .ftp_client import FTPClient, ObjectType, Permission, RawEntry
from .hashing import FileHash, HashAlgorithm, HashResolution
from .locking import ExclusiveLock
from .metadata import FileAccess, LinkInfo, LinkMetadata, ListingOptions
from .remote_client import AsyncFTPTransport, FTPTransport

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "FTPConfig",
    "ConnectionConfig",
    "PermissionConfig",
    "PermissionPolicy",
    "LogConfig",
    "load_config",
    "parse_address",
    # Transports
    "FTPTransport",
    "AsyncFTPTransport",
    "FTPClient",
    "AsyncFTPClient",
    "RawEntry",
    "ObjectType",
    "Permission",
    # Filesystem
    "FTPFileSystem",
    "create_filesystem",
    "ExclusiveLock",
    "FileAccess",
    "LinkInfo",
    "LinkMetadata",
    "ListingOptions",
    "FileHash",
    "HashAlgorithm",
    "HashResolution",
    # Errors
    "ConflictError",
    "NotEmptyError",
    "UnsupportedOperationError",
    "FTPCommandError",
]
