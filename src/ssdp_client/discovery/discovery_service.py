"""
Service that runs configured SSDP discovery sessions and yields the
services found as an async generator.
"""
import asyncio
import ipaddress
from collections.abc import AsyncGenerator
from typing import Any, Optional

import structlog

from ..config import Config, DiscoveryConfig
from ..models.ssdp import DiscoveredService, SearchRequest
from .network import resolve_interfaces
from .provisioner import SocketProvisioner
from .session import DiscoveryObserver, SSDPDiscovery

logger = structlog.get_logger(__name__)

# Queue sentinel marking the end of a session
_FINISHED = object()


class _QueueObserver(DiscoveryObserver):
    """Feeds session events into a queue consumed by discover_services()."""

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue
        self.no_sockets_available = False

    def on_service_discovered(self, discovery: SSDPDiscovery, service: DiscoveredService) -> None:
        self.queue.put_nowait(service)

    def on_discovery_finished(self, discovery: SSDPDiscovery, no_sockets_available: bool) -> None:
        self.no_sockets_available = no_sockets_available
        self.queue.put_nowait(_FINISHED)


class SSDPSearchService:
    """
    Runs SSDP searches described by the application configuration.
    One search at a time; nothing is remembered between searches.
    """

    def __init__(self, app_config: Config, parent_logger: Optional[Any] = None):
        self.app_config = app_config
        self.discovery_config: DiscoveryConfig = app_config.discovery
        self.logger = (parent_logger or logger).bind(service="SSDPSearchService")
        self._discovery: Optional[SSDPDiscovery] = None
        self._no_sockets_available = False

    @property
    def no_sockets_available(self) -> bool:
        """True if the last search could not open a single socket."""
        return self._no_sockets_available

    def build_request(self, duration: Optional[float] = None) -> SearchRequest:
        cfg = self.discovery_config
        return SearchRequest(
            duration=duration if duration is not None else cfg.duration_seconds,
            search_target=cfg.search_target,
            port=cfg.port,
            interfaces=resolve_interfaces(cfg.interfaces, cfg.use_all_interfaces, cfg.include_ipv6),
        )

    async def discover_services(self, duration: Optional[float] = None) -> AsyncGenerator[DiscoveredService, None]:
        """
        Runs one discovery session and yields services as replies arrive.
        Replies from hosts outside allowed_networks are skipped.
        """
        if self._discovery is not None and self._discovery.is_running:
            raise RuntimeError("A search is already running")

        request = self.build_request(duration)
        queue: asyncio.Queue = asyncio.Queue()
        observer = _QueueObserver(queue)
        discovery = SSDPDiscovery(
            observer=observer,
            logger=self.logger,
            provisioner=SocketProvisioner(multicast_ttl=self.discovery_config.multicast_ttl, parent_logger=self.logger),
        )
        self._discovery = discovery
        self._no_sockets_available = False

        try:
            await discovery.start(request)
            while True:
                item = await queue.get()
                if item is _FINISHED:
                    break
                if not self._is_service_allowed(item):
                    self.logger.debug("Response filtered out by allowed_networks", host=item.host)
                    continue
                yield item
        finally:
            # Consumer may stop iterating early
            discovery.stop()
            self._no_sockets_available = observer.no_sockets_available
            if self._no_sockets_available:
                self.logger.warning("No socket could be set up; multicast may be blocked or not permitted")

    def _is_service_allowed(self, service: DiscoveredService) -> bool:
        """Checks if the responding host is within the allowed networks."""
        if not self.discovery_config.allowed_networks:
            return True # No filter means all are allowed

        try:
            host_ip = ipaddress.ip_address(service.host.split("%")[0])
        except ValueError as e:
            self.logger.warning("Could not parse responding host for filtering", host=service.host, error=str(e))
            return False

        for network_str in self.discovery_config.allowed_networks:
            try:
                allowed_net = ipaddress.ip_network(network_str, strict=False)
            except ValueError as e:
                self.logger.error("Invalid network in allowed_networks config", network_str=network_str, error=str(e))
                continue
            if host_ip in allowed_net:
                return True
        return False

    async def stop_discovery(self) -> None:
        """Ends the running search early."""
        if self._discovery is not None:
            self.logger.info("Stopping active search.")
            self._discovery.stop()
