"""
Shared fixtures: a provisioner that binds real loopback UDP endpoints so
readers and sessions see genuine datagrams without touching multicast.
"""
import asyncio
import socket
from unittest.mock import MagicMock

import pytest

from ssdp_client.discovery.network import resolve_multicast_group
from ssdp_client.discovery.provisioner import SocketBinding
from ssdp_client.discovery.session import DiscoveryObserver
from ssdp_client.exceptions import SetupError


class LoopbackProvisioner:
    """Stands in for SocketProvisioner; interfaces listed in ``failing`` raise SetupError.

    ``delays`` overrides ``delay`` per interface, ``raising`` maps an interface
    to any other exception to raise.
    """

    def __init__(self, failing=(), delay: float = 0.0, delays=None, raising=None):
        self.failing = set(failing)
        self.delay = delay
        self.delays = delays or {}
        self.raising = raising or {}
        self.bindings: list[SocketBinding] = []
        self.requests = []

    async def provision(self, interface, request, protocol_factory):
        self.requests.append((interface, request))
        delay = self.delays.get(interface, self.delay)
        if delay:
            await asyncio.sleep(delay)
        if interface in self.raising:
            raise self.raising[interface]
        if interface in self.failing:
            raise SetupError(interface, "Network is unreachable")
        loop = asyncio.get_running_loop()
        transport, reader = await loop.create_datagram_endpoint(protocol_factory, local_addr=("127.0.0.1", 0))
        binding = SocketBinding(
            interface=interface,
            target=resolve_multicast_group("127.0.0.1"),
            transport=transport,
            reader=reader,
        )
        self.bindings.append(binding)
        return binding


class RecordingObserver(DiscoveryObserver):
    """Records every notification in order."""

    def __init__(self):
        self.events = []
        self.services = []
        self.service_seen = asyncio.Event()

    @property
    def finished(self):
        return [args for name, args in self.events if name == "finished"]

    def on_discovery_started(self, discovery):
        self.events.append(("started", ()))

    def on_service_discovered(self, discovery, service):
        self.events.append(("service", (service,)))
        self.services.append(service)
        self.service_seen.set()

    def on_discovery_finished(self, discovery, no_sockets_available):
        self.events.append(("finished", (no_sockets_available,)))


@pytest.fixture
def make_provisioner():
    return LoopbackProvisioner


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def mock_logger():
    """A logger whose bind() returns itself, so calls are easy to assert."""
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger


@pytest.fixture
def udp_sender():
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield sender
    sender.close()


SAMPLE_RESPONSE = (
    "HTTP/1.1 200 OK\r\n"
    "CACHE-CONTROL: max-age=1800\r\n"
    "EXT:\r\n"
    "LOCATION: http://192.168.1.20:49152/description.xml\r\n"
    "SERVER: Linux/5.10 UPnP/1.0 MiniDLNA/1.3.0\r\n"
    "ST: upnp:rootdevice\r\n"
    "USN: uuid:4d696e69-444c-164e-9d41-b827eb54e939::upnp:rootdevice\r\n"
    "\r\n"
)


@pytest.fixture
def sample_response():
    return SAMPLE_RESPONSE
