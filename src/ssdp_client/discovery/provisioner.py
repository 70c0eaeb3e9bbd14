"""Per-interface socket setup: create, bind, send the M-SEARCH."""

import asyncio
import socket
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from ..exceptions import SetupError
from ..models.common import AddressFamily
from ..models.ssdp import SearchRequest
from .message import build_search_request
from .network import MulticastTarget, resolve_multicast_group
from .reader import ResponseReader

logger = structlog.get_logger(__name__)

DEFAULT_MULTICAST_TTL = 2


@dataclass
class SocketBinding:
    """An open, already-armed socket owned by a discovery session."""
    interface: Optional[str]
    target: MulticastTarget
    transport: asyncio.DatagramTransport
    reader: ResponseReader
    _closed: bool = field(default=False, repr=False)

    @property
    def family(self) -> AddressFamily:
        return self.target.family

    @property
    def group(self) -> str:
        return self.target.group

    @property
    def closed(self) -> bool:
        """True once closed here or by the reader after a receive error."""
        return self._closed or self.reader.closed.is_set()

    @property
    def local_address(self) -> Optional[tuple]:
        return self.transport.get_extra_info("sockname")

    def close(self) -> None:
        """Close the socket. Unblocks the reader; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self.transport.close()


class SocketProvisioner:
    """Sets up one UDP socket per interface and multicasts the search request."""

    def __init__(
        self,
        multicast_ttl: int = DEFAULT_MULTICAST_TTL,
        parent_logger: Optional[Any] = None,
        socket_factory: Callable[..., socket.socket] = socket.socket,
    ):
        self.multicast_ttl = multicast_ttl
        self.socket_factory = socket_factory
        self.logger = (parent_logger or logger).bind(component="SocketProvisioner")

    async def provision(
        self,
        interface: Optional[str],
        request: SearchRequest,
        protocol_factory: Callable[[], ResponseReader],
    ) -> SocketBinding:
        """Open a socket on ``interface`` and send the M-SEARCH from it.

        Raises:
            SetupError: If creating, binding or sending fails. The socket is
                closed before the error propagates.
        """
        target = resolve_multicast_group(interface)
        message = build_search_request(request.search_target, target.group, request.port, request.wait_hint)

        sock: Optional[socket.socket] = None
        try:
            sock = self.socket_factory(target.socket_family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
            sock.bind(target.bind_address)
            self._configure_multicast(sock, interface, target)
            sock.sendto(message.encode("utf-8"), target.destination(request.port))
            self.logger.debug("Sent M-SEARCH", interface=interface or "default", group=target.group, port=request.port)

            loop = asyncio.get_running_loop()
            transport, reader = await loop.create_datagram_endpoint(protocol_factory, sock=sock)
        except OSError as e:
            if sock is not None:
                sock.close()
            raise SetupError(interface, str(e)) from e
        except BaseException:
            # Cancelled mid-setup
            if sock is not None:
                sock.close()
            raise

        return SocketBinding(interface=interface, target=target, transport=transport, reader=reader)

    def _configure_multicast(self, sock: socket.socket, interface: Optional[str], target: MulticastTarget) -> None:
        if target.family == AddressFamily.IPV6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, self.multicast_ttl)
            if target.scope_id:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, target.scope_id)
            return
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.multicast_ttl)
        if interface:
            # Without this the kernel picks the egress interface from the routing table
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(target.bind_address[0]))
