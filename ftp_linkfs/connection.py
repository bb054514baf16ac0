"""
Lazy ownership of the blocking and async FTP connections.
"""

import asyncio
import logging

from .async_ftp_client import AsyncFTPClient
from .config import ConnectionConfig, FTPConfig
from .ftp_client import FTPClient

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Owns at most one blocking and one async transport for a single endpoint.

    Each transport is created on first use and reconnected when it reports
    itself disconnected. Failures to connect are raised as-is; retrying is
    left to the transport's configured retry count. The caller serializes
    access, this class does no locking of its own.
    """

    def __init__(
        self,
        ftp_config: FTPConfig,
        conn_config: ConnectionConfig,
        client_factory=FTPClient,
        async_client_factory=AsyncFTPClient,
    ):
        self.ftp_config = ftp_config
        self.conn_config = conn_config
        self._client_factory = client_factory
        self._async_client_factory = async_client_factory
        self._client = None
        self._async_client = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionError(f"Connection to {self.ftp_config.host} has been closed")

    def acquire_connection(self) -> FTPClient:
        """Return the blocking transport, connected."""
        self._check_open()
        if self._client is None:
            self._client = self._client_factory(self.ftp_config, self.conn_config)
        if not self._client.is_connected:
            logger.debug("Preparing connection to %s", self.ftp_config.host)
            self._client.connect()
        return self._client

    async def acquire_connection_async(self) -> AsyncFTPClient:
        """Return the async transport, connected."""
        self._check_open()
        if self._async_client is None:
            self._async_client = self._async_client_factory(self.ftp_config, self.conn_config)
        if not self._async_client.is_connected:
            logger.debug("Preparing async connection to %s", self.ftp_config.host)
            await self._async_client.connect()
        return self._async_client

    def close(self) -> None:
        """Disconnect both transports. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        client, self._client = self._client, None
        async_client, self._async_client = self._async_client, None

        try:
            if client is not None:
                client.disconnect()
        finally:
            if async_client is not None:
                # QUIT needs the event loop; outside it the socket is just closed
                async_client.discard()
        logger.info("Closed connections to %s", self.ftp_config.host)

    async def aclose(self) -> None:
        """Disconnect both transports from a coroutine. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        client, self._client = self._client, None
        async_client, self._async_client = self._async_client, None

        try:
            if async_client is not None:
                await async_client.disconnect()
        finally:
            if client is not None:
                await asyncio.to_thread(client.disconnect)
        logger.info("Closed connections to %s", self.ftp_config.host)
