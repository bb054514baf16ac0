"""
Exceptions raised by the FTP filesystem facade.

Connection failures use the builtin ``ConnectionError`` and missing paths or
refused access use ``FileNotFoundError`` / ``PermissionError``; the classes
here cover the outcomes that have no builtin counterpart.
"""

import io


class FTPCommandError(OSError):
    """The server answered a command with an unexpected status code."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(f"{code} {message}".strip())
        self.code = code
        self.message = message


class ConflictError(FileExistsError):
    """The target exists and overwriting was not requested."""


class NotEmptyError(OSError):
    """A non-recursive delete was requested for a directory with entries."""


class UnsupportedOperationError(io.UnsupportedOperation):
    """The requested capability is not offered by this filesystem."""
