"""
Content hash negotiation.

Servers differ in which hash command they understand, if any. The resolver
asks once per request and remembers, for the lifetime of the filesystem,
when the server has answered that it does not understand the command at all.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .engine import Plan, call
from .exceptions import FTPCommandError

logger = logging.getLogger(__name__)

# "Syntax error, command unrecognized" and "Command not implemented"
UNSUPPORTED_REPLY_CODES = frozenset({"500", "502"})


class HashAlgorithm(Enum):
    NONE = "none"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"
    MD5 = "md5"
    CRC32 = "crc32"

    @classmethod
    def from_remote(cls, name: str | None) -> "HashAlgorithm":
        """Map a server algorithm name such as ``SHA-256`` onto the closed set."""
        if not name:
            return cls.NONE
        key = name.strip().upper().replace("-", "").replace("_", "")
        return _REMOTE_NAMES.get(key, cls.NONE)


_REMOTE_NAMES = {
    "SHA1": HashAlgorithm.SHA1,
    "SHA256": HashAlgorithm.SHA256,
    "SHA512": HashAlgorithm.SHA512,
    "MD5": HashAlgorithm.MD5,
    "CRC": HashAlgorithm.CRC32,
    "CRC32": HashAlgorithm.CRC32,
}


@dataclass(frozen=True)
class FileHash:
    algorithm: HashAlgorithm
    value: str


@dataclass(frozen=True)
class HashResolution:
    """Outcome of one hash request.

    ``hash`` is None when no usable hash was obtained; ``supported`` is False
    once the server has declared that it cannot hash at all.
    """

    hash: FileHash | None
    supported: bool


class HashResolver:
    """Resolves content hashes and tracks whether the server supports them.

    The support flag starts True and flips to False at most once. It is only
    changed from inside a plan, which the filesystem runs while holding its
    exclusive lock.
    """

    def __init__(self):
        self._supported = True

    @property
    def supported(self) -> bool:
        return self._supported

    def resolve(self, path: str) -> Plan:
        if not self._supported:
            return HashResolution(None, supported=False)

        try:
            reply = yield call("get_checksum", path)
        except FTPCommandError as exc:
            if exc.code in UNSUPPORTED_REPLY_CODES:
                self._supported = False
                logger.info("Server does not support hashing (%s), disabling", exc.code)
                return HashResolution(None, supported=False)
            logger.debug("Hash of %s unavailable: %s", path, exc)
            return HashResolution(None, supported=True)
        except Exception as exc:
            # Hashing is best effort
            logger.debug("Hash of %s unavailable: %s", path, exc)
            return HashResolution(None, supported=True)

        if reply is None or not reply.is_valid:
            return HashResolution(None, supported=True)

        algorithm = HashAlgorithm.from_remote(reply.algorithm)
        if algorithm is HashAlgorithm.NONE:
            logger.debug("Ignoring hash of %s with unknown algorithm %s", path, reply.algorithm)
            return HashResolution(None, supported=True)

        return HashResolution(FileHash(algorithm, reply.value), supported=True)
