"""Per-socket reader for M-SEARCH replies."""

import asyncio
from typing import Any, Callable, Optional

import structlog

from ..exceptions import DecodeError, ReadError
from ..models.ssdp import DiscoveredService
from .message import decode_datagram

logger = structlog.get_logger(__name__)

ServiceCallback = Callable[[DiscoveredService], None]


class ResponseReader(asyncio.DatagramProtocol):
    """Reads replies from one socket and hands each decoded one to ``on_service``.

    One datagram is one reply; there is no reassembly. The reader ends when
    its transport is closed: silently if the session closed it, after
    recording a ReadError if a receive failed.
    """

    def __init__(
        self,
        interface: Optional[str],
        on_service: ServiceCallback,
        parent_logger: Optional[Any] = None,
    ):
        self.interface = interface
        self.on_service = on_service
        self.logger = (parent_logger or logger).bind(interface=interface or "default")
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.error: Optional[ReadError] = None
        self.datagrams_received = 0
        self.closed = asyncio.Event()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self.datagrams_received += 1
        host = addr[0]
        if not data:
            self.logger.debug("Received empty datagram", host=host)
            return
        try:
            response = decode_datagram(data, host)
        except DecodeError as e:
            self.logger.debug("Dropping undecodable datagram", host=host, error=str(e))
            return

        self.logger.debug("Received response", host=host, response=response.replace("\r\n", "\\n"))
        self.on_service(DiscoveredService(host=host, response=response))

    def error_received(self, exc: Exception) -> None:
        # Only this socket's reader ends; other interfaces keep reading.
        self.error = ReadError(self.interface, str(exc))
        self.logger.error("Socket error during read", error=str(self.error))
        if self.transport is not None:
            self.transport.close()

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None and self.error is None:
            self.error = ReadError(self.interface, str(exc))
            self.logger.error("Socket lost during read", error=str(self.error))
        self.transport = None
        self.closed.set()
