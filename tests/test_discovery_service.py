"""
Unit tests for SSDPSearchService.
"""
import asyncio
import socket
from unittest.mock import MagicMock, patch

import pytest

from conftest import LoopbackProvisioner
from ssdp_client.config import Config, DiscoveryConfig
from ssdp_client.discovery.discovery_service import SSDPSearchService
from ssdp_client.models.ssdp import DiscoveredService


class ReplyingProvisioner(LoopbackProvisioner):
    """Loopback provisioner that sends canned replies to each new socket."""

    def __init__(self, replies=(), **kwargs):
        super().__init__(**kwargs)
        self.replies = list(replies)

    async def provision(self, interface, request, protocol_factory):
        binding = await super().provision(interface, request, protocol_factory)
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            for reply in self.replies:
                sender.sendto(reply.encode("utf-8"), binding.local_address)
        finally:
            sender.close()
        return binding


def make_service(**discovery_kwargs):
    discovery_kwargs.setdefault("duration_seconds", 0.3)
    return SSDPSearchService(app_config=Config(discovery=DiscoveryConfig(**discovery_kwargs)))


@pytest.fixture
def provisioner_patch():
    """Patches SocketProvisioner so the service gets the given provisioner."""
    def _patch(provisioner):
        return patch(
            "ssdp_client.discovery.discovery_service.SocketProvisioner",
            return_value=provisioner,
        )
    return _patch


@pytest.mark.asyncio
async def test_discover_services_yields_replies(provisioner_patch, sample_response):
    provisioner = ReplyingProvisioner(replies=[sample_response])
    service = make_service(multicast_ttl=3)

    with provisioner_patch(provisioner) as provisioner_cls:
        found = [s async for s in service.discover_services()]

    assert provisioner_cls.call_args.kwargs["multicast_ttl"] == 3
    assert len(found) == 1
    assert isinstance(found[0], DiscoveredService)
    assert found[0].host == "127.0.0.1"
    assert found[0].response == sample_response
    assert not service.no_sockets_available
    assert all(b.closed for b in provisioner.bindings)


@pytest.mark.asyncio
async def test_allowed_networks_filters_replies(provisioner_patch, sample_response):
    allowed = make_service(allowed_networks=["127.0.0.0/8"])
    with provisioner_patch(ReplyingProvisioner(replies=[sample_response])):
        assert len([s async for s in allowed.discover_services()]) == 1

    blocked = make_service(allowed_networks=["10.0.0.0/8"])
    with provisioner_patch(ReplyingProvisioner(replies=[sample_response])):
        assert [s async for s in blocked.discover_services()] == []


@pytest.mark.asyncio
async def test_no_sockets_available(provisioner_patch):
    service = make_service(interfaces=["10.0.0.1"])

    with provisioner_patch(LoopbackProvisioner(failing={"10.0.0.1"})):
        found = [s async for s in service.discover_services()]

    assert found == []
    assert service.no_sockets_available


@pytest.mark.asyncio
async def test_duration_override(provisioner_patch):
    provisioner = LoopbackProvisioner()
    service = make_service(duration_seconds=60)

    with provisioner_patch(provisioner):
        found = await asyncio.wait_for(_collect(service.discover_services(duration=0.1)), timeout=2)

    assert found == []
    assert provisioner.requests[0][1].duration == 0.1


@pytest.mark.asyncio
async def test_early_exit_stops_session(provisioner_patch, sample_response):
    provisioner = ReplyingProvisioner(replies=[sample_response, sample_response])
    service = make_service(duration_seconds=60)

    with provisioner_patch(provisioner):
        gen = service.discover_services()
        first = await asyncio.wait_for(gen.__anext__(), timeout=2)
        await gen.aclose()

    assert first.host == "127.0.0.1"
    assert all(b.closed for b in provisioner.bindings)


@pytest.mark.asyncio
async def test_stop_discovery_ends_search(provisioner_patch):
    provisioner = LoopbackProvisioner()
    service = make_service(duration_seconds=60)

    with provisioner_patch(provisioner):
        task = asyncio.create_task(_collect(service.discover_services()))
        while not provisioner.bindings:
            await asyncio.sleep(0.01)
        await service.stop_discovery()
        found = await asyncio.wait_for(task, timeout=2)

    assert found == []
    assert all(b.closed for b in provisioner.bindings)


def test_build_request_uses_config():
    service = make_service(duration_seconds=7, search_target="upnp:rootdevice", port=1901, interfaces=["192.168.1.10"])

    request = service.build_request()

    assert request.duration == 7
    assert request.search_target == "upnp:rootdevice"
    assert request.port == 1901
    assert request.interfaces == ["192.168.1.10"]
    assert service.build_request(duration=2).duration == 2
    assert make_service().build_request().interfaces == [None]


@pytest.mark.parametrize("host,networks,expected", [
    ("192.168.1.20", [], True),
    ("192.168.1.20", ["192.168.1.0/24"], True),
    ("192.168.1.20", ["10.0.0.0/8"], False),
    ("fe80::1%eth0", ["fe80::/10"], True),
    ("not-an-ip", ["10.0.0.0/8"], False),
    ("10.1.2.3", ["bogus", "10.0.0.0/8"], True),
])
def test_is_service_allowed(host, networks, expected):
    logger = MagicMock()
    logger.bind.return_value = logger
    service = SSDPSearchService(
        app_config=Config(discovery=DiscoveryConfig(allowed_networks=networks)),
        parent_logger=logger,
    )
    assert service._is_service_allowed(DiscoveredService(host=host, response="HTTP/1.1 200 OK")) is expected


async def _collect(agen):
    return [item async for item in agen]
