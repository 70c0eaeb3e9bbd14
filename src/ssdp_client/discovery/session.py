"""
Discovery session: runs one M-SEARCH across a set of interfaces and
collects replies until the deadline or an explicit stop().

The session is owned by the asyncio event loop it is first started on.
start(), stop() and every change to the socket set happen on that loop;
other threads reach it through stop_threadsafe().
"""
import asyncio
from typing import Any, Iterable, List, Optional, Protocol

import structlog

from ..exceptions import SessionStateError, SetupError
from ..models.common import DEFAULT_SEARCH_TARGET, SSDP_PORT, SessionState
from ..models.ssdp import DiscoveredService, SearchRequest
from .provisioner import SocketBinding, SocketProvisioner
from .reader import ResponseReader


class DiscoveryObserver:
    """Receives session notifications. Override only what you need.

    on_discovery_started and on_discovery_finished are called on the owning
    event loop. Any object with some of these methods works as an observer;
    subclassing is optional.
    """

    def on_discovery_started(self, discovery: "SSDPDiscovery") -> None:
        pass

    def on_service_discovered(self, discovery: "SSDPDiscovery", service: DiscoveredService) -> None:
        pass

    def on_discovery_finished(self, discovery: "SSDPDiscovery", no_sockets_available: bool) -> None:
        pass


class Provisioner(Protocol):
    async def provision(self, interface: Optional[str], request: SearchRequest, protocol_factory: Any) -> SocketBinding:
        ...


class SSDPDiscovery:
    """SSDP discovery for UPnP devices on the LAN."""

    def __init__(
        self,
        observer: Optional[Any] = None,
        logger: Optional[Any] = None,
        provisioner: Optional[Provisioner] = None,
    ):
        self.observer = observer
        self.logger = logger if logger is not None else structlog.get_logger(__name__).bind(component="SSDPDiscovery")
        self.provisioner: Provisioner = provisioner or SocketProvisioner(parent_logger=self.logger)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._state = SessionState.IDLE
        self._bindings: List[SocketBinding] = []
        self._request: Optional[SearchRequest] = None
        self._deadline: Optional[asyncio.TimerHandle] = None
        self._generation = 0 # bumped per run; stale deadline callbacks compare against it
        self._stop_requested = False
        self._idle = asyncio.Event()
        self._idle.set()

    # --- Properties ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def socket_count(self) -> int:
        """Open sockets; one closed by a receive error no longer counts."""
        return sum(1 for binding in self._bindings if not binding.closed)

    @property
    def bindings(self) -> List[SocketBinding]:
        return list(self._bindings)

    @property
    def request(self) -> Optional[SearchRequest]:
        return self._request

    # --- Public API ---

    async def discover_service(
        self,
        duration: float = 10,
        search_target: str = DEFAULT_SEARCH_TARGET,
        port: int = SSDP_PORT,
        interfaces: Iterable[Optional[str]] = (None,),
    ) -> None:
        """Discover SSDP services for a duration.

        Args:
            duration: How long to listen, in seconds. Also sent as the MX hint.
            search_target: The type of the searched service.
            port: The multicast port.
            interfaces: Local addresses to search from; None means the default interface.
        """
        request = SearchRequest(
            duration=duration,
            search_target=search_target,
            port=port,
            interfaces=list(interfaces),
        )
        await self.start(request)

    async def start(self, request: SearchRequest) -> None:
        """Provision sockets, send the search and start listening.

        Returns once every interface has been tried. The session then keeps
        listening in the background until the deadline or stop().
        """
        self._check_owner()
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Discovery already in progress (state={self._state.value})")

        self._state = SessionState.STARTING
        self._request = request
        self._stop_requested = False
        self._generation += 1
        generation = self._generation
        self._idle.clear()
        self.logger.info(
            "Starting SSDP discovery",
            search_target=request.search_target,
            duration=request.duration,
            interfaces=[i or "default" for i in request.interfaces],
        )
        self._notify("on_discovery_started")

        tasks = [
            asyncio.create_task(self._provision_one(iface, request, generation))
            for iface in request.interfaces
        ]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except BaseException:
            # Cancelled while provisioning; gather has cancelled and awaited every task
            self._abort_start([
                task.result() for task in tasks
                if task.done() and not task.cancelled() and task.exception() is None and task.result() is not None
            ])
            raise

        bindings = [result for result in results if isinstance(result, SocketBinding)]
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            self._abort_start(bindings)
            raise failures[0]

        if not bindings:
            # Typically multicast is blocked or a local-network permission is missing
            self.logger.info("No sockets available, discovery finished")
            self._state = SessionState.IDLE
            self._idle.set()
            self._notify("on_discovery_finished", True)
            return

        if self._stop_requested:
            # stop() ran while we were provisioning
            self._bindings = bindings
            self._state = SessionState.LISTENING
            self.stop()
            return

        self._bindings = bindings
        self._state = SessionState.LISTENING
        self._deadline = self._loop.call_later(request.duration, self._on_deadline, generation)  # type: ignore[union-attr]
        self.logger.info("Listening for responses", sockets=len(bindings))

    def stop(self) -> None:
        """Stop the discovery before the timeout. Safe to call repeatedly."""
        self._check_owner()
        if self._state is SessionState.IDLE or self._state is SessionState.STOPPING:
            return
        if self._state is SessionState.STARTING:
            self._stop_requested = True
            return

        self._state = SessionState.STOPPING
        self.logger.info("Stopping SSDP discovery", sockets=len(self._bindings))
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None
        while self._bindings:
            self._bindings.pop().close()
        self._state = SessionState.IDLE
        self._idle.set()
        self._notify("on_discovery_finished", False)

    def stop_threadsafe(self) -> None:
        """Request stop() from any thread."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.stop)

    async def wait(self) -> None:
        """Wait until the session is idle again."""
        await self._idle.wait()

    async def __aenter__(self) -> "SSDPDiscovery":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._loop is not None:
            self.stop()

    # --- Internals ---

    def _check_owner(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            raise SessionStateError("SSDPDiscovery must be driven from its event loop; use stop_threadsafe() from other threads") from None
        if self._loop is None:
            self._loop = running
        elif running is not self._loop:
            raise SessionStateError("SSDPDiscovery is owned by a different event loop")

    async def _provision_one(self, interface: Optional[str], request: SearchRequest, generation: int) -> Optional[SocketBinding]:
        def reader_factory() -> ResponseReader:
            return ResponseReader(
                interface,
                lambda service: self._on_service(service, generation),
                parent_logger=self.logger,
            )

        try:
            return await self.provisioner.provision(interface, request, reader_factory)
        except SetupError as e:
            # "No route to host" when multicast is not allowed is hard to foresee,
            # and with several interfaces some may simply not work.
            self.logger.info("Socket error during setup, skipping interface", interface=interface or "default", error=str(e))
            return None

    def _abort_start(self, bindings: List[SocketBinding]) -> None:
        """Tear down a start() that did not complete, so the session is idle again."""
        self.logger.warning("Discovery start interrupted, closing sockets", sockets=len(bindings))
        self._bindings = bindings
        self._state = SessionState.LISTENING
        self.stop()

    def _on_service(
self, service: DiscoveredService, generation: int) -> None:
        if generation != self._generation or self._state not in (SessionState.STARTING, SessionState.LISTENING):
            return
        self._notify("on_service_discovered", service)

    def _on_deadline(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._deadline = None
        self.stop()

    def _notify(self, method: str, *args: Any) -> None:
        callback = getattr(self.observer, method, None)
        if callback is None:
            return
        try:
            callback(self, *args)
        except Exception:
            self.logger.exception("Observer callback failed", callback=method)
