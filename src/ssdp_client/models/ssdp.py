from typing import Optional

from pydantic import Field

from ..discovery.message import parse_headers
from .common import SSDP_PORT, DEFAULT_SEARCH_TARGET, BasePydanticModel


class SearchRequest(BasePydanticModel):
    duration: float = Field(default=10.0, gt=0, description="How long to listen for replies, in seconds. Also the MX wait hint.")
    search_target: str = Field(default=DEFAULT_SEARCH_TARGET, min_length=1, description="Search target (ST) to query for.")
    port: int = Field(default=SSDP_PORT, ge=1, le=65535, description="Destination port of the multicast group.")
    # None means "bind the system default interface"
    interfaces: list[Optional[str]] = Field(default_factory=lambda: [None], description="Local addresses to search from.")

    @property
    def wait_hint(self) -> int:
        """MX value: the duration truncated to whole seconds."""
        return int(self.duration)


class DiscoveredService(BasePydanticModel):
    """A single reply to an M-SEARCH.

    Only the sender and the raw text are stored. The header accessors below
    parse the text each time they are read.
    """
    host: str # Address of the responding device
    response: str # Decoded datagram, verbatim

    @property
    def headers(self) -> dict[str, str]:
        return parse_headers(self.response)

    @property
    def status_line(self) -> str:
        return self.response.split("\n", 1)[0].strip()

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    @property
    def server(self) -> Optional[str]:
        return self.headers.get("server")

    @property
    def usn(self) -> Optional[str]:
        """Unique service name."""
        return self.headers.get("usn")

    @property
    def search_target(self) -> Optional[str]:
        return self.headers.get("st")

    @property
    def cache_control(self) -> Optional[str]:
        return self.headers.get("cache-control")

    def summary(self) -> dict[str, Optional[str]]:
        return {
            "host": self.host,
            "location": self.location,
            "server": self.server,
            "usn": self.usn,
            "st": self.search_target,
        }
