"""
Read handles that run a callback when they are closed.

The callback finalizes the FTP transfer and releases the filesystem lock,
so the handle must be closed (or used as a context manager) to let other
operations proceed.
"""

import io
from collections.abc import Awaitable, Callable


class NotifyOnCloseStream(io.RawIOBase):
    """Blocking read stream over an open data channel."""

    def __init__(self, handle, on_close: Callable[[bool], None]):
        super().__init__()
        self._handle = handle
        self._on_close = on_close
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._handle.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        if size == 0 and len(buffer) > 0:
            self._eof = True
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            try:
                self._handle.close()
            finally:
                self._on_close(self._eof)
        finally:
            super().close()


class AsyncNotifyOnCloseStream:
    """Async read stream over an open aioftp data stream."""

    def __init__(self, handle, on_close: Callable[[bool], Awaitable[None]]):
        self._handle = handle
        self._on_close = on_close
        self._eof = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        data = await self._handle.read(size)
        if size < 0 or not data:
            self._eof = True
        return data

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._handle.close()
        finally:
            await self._on_close(self._eof)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
