"""SSDP Client - discovers UPnP devices on the local network with SSDP M-SEARCH.

Multicasts a search request from one or more local interfaces and reports
every reply received within a bounded time window.
"""

__version__ = "0.1.0"

from .config import Config
from .discovery.discovery_service import SSDPSearchService
from .discovery.session import DiscoveryObserver, SSDPDiscovery
from .exceptions import DecodeError, ReadError, SessionStateError, SetupError, SSDPClientError
from .models import DiscoveredService, SearchRequest, SessionState

__all__ = [
    "Config",
    "DecodeError",
    "DiscoveredService",
    "DiscoveryObserver",
    "ReadError",
    "SSDPClientError",
    "SSDPDiscovery",
    "SSDPSearchService",
    "SearchRequest",
    "SessionState",
    "SessionStateError",
    "SetupError",
]
