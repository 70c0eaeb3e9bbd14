"""
Pydantic models for the SSDP client.
"""
from .common import (
    DEFAULT_SEARCH_TARGET,
    SSDP_IPV4_GROUP,
    SSDP_IPV6_GROUP,
    SSDP_PORT,
    AddressFamily,
    BasePydanticModel,
    SessionState,
)
from .ssdp import DiscoveredService, SearchRequest

__all__ = [
    "AddressFamily",
    "BasePydanticModel",
    "DEFAULT_SEARCH_TARGET",
    "DiscoveredService",
    "SSDP_IPV4_GROUP",
    "SSDP_IPV6_GROUP",
    "SSDP_PORT",
    "SearchRequest",
    "SessionState",
]
