"""Local interface enumeration and multicast group resolution."""

import socket
from dataclasses import dataclass
from typing import List, Optional, Tuple

import netifaces
import structlog

from ..exceptions import SetupError
from ..models.common import SSDP_IPV4_GROUP, SSDP_IPV6_GROUP, AddressFamily

logger = structlog.get_logger(__name__)

# Used only to pick the address family when no interface is given
DEFAULT_FAMILY_PROBE = "127.0.0.1"


@dataclass(frozen=True)
class MulticastTarget:
    """Where to bind and where to send for one interface."""
    family: AddressFamily
    group: str
    bind_address: Tuple
    scope_id: int = 0

    @property
    def socket_family(self) -> socket.AddressFamily:
        return socket.AF_INET6 if self.family == AddressFamily.IPV6 else socket.AF_INET

    def destination(self, port: int) -> Tuple:
        if self.family == AddressFamily.IPV6:
            return (self.group, port, 0, self.scope_id)
        return (self.group, port)


def resolve_multicast_group(interface: Optional[str]) -> MulticastTarget:
    """Resolve the address family and SSDP multicast group for an interface.

    Args:
        interface: Local address to search from, or None for the default interface.

    Returns:
        MulticastTarget: ``239.255.255.250`` for IPv4 addresses, ``ff02::c`` for IPv6.

    Raises:
        SetupError: If the interface address cannot be resolved.
    """
    try:
        infos = socket.getaddrinfo(interface or DEFAULT_FAMILY_PROBE, 0, socket.AF_UNSPEC, socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError) as e:
        raise SetupError(interface, f"cannot resolve address: {e}") from e
    if not infos:
        raise SetupError(interface, "cannot resolve address")

    family, _, _, _, sockaddr = infos[0]
    if family == socket.AF_INET6:
        scope_id = sockaddr[3] if len(sockaddr) > 3 else 0
        bind_address = sockaddr if interface else ("::", 0, 0, 0)
        return MulticastTarget(AddressFamily.IPV6, SSDP_IPV6_GROUP, bind_address, scope_id)

    bind_address = (sockaddr[0], 0) if interface else ("0.0.0.0", 0)
    return MulticastTarget(AddressFamily.IPV4, SSDP_IPV4_GROUP, bind_address)


def get_network_interfaces(skip_loopback: bool = True) -> List[str]:
    """Get list of network interface names.

    Args:
        skip_loopback: Whether to exclude loopback interfaces.

    Returns:
        List[str]: Interface names, empty if enumeration fails.
    """
    try:
        interfaces = netifaces.interfaces()
    except (OSError, ValueError) as e:
        logger.warning("Interface enumeration failed", error=str(e))
        return []
    if skip_loopback:
        # 'lo' on Linux, 'lo0' on macOS, 'Loopback ...' on Windows
        interfaces = [
            iface for iface in interfaces
            if not iface.lower().startswith(("lo", "loopback"))
        ]
    return interfaces


def get_interface_ips(interface: str, include_ipv6: bool = True, keep_scope: bool = False) -> List[str]:
    """Get the addresses of one interface, IPv4 first.

    Args:
        interface: Network interface name.
        include_ipv6: Whether to include IPv6 addresses.
        keep_scope: Keep the ``%iface`` suffix of link-local IPv6 addresses,
            which is needed to bind to them.
    """
    addresses: List[str] = []
    try:
        addr_info = netifaces.ifaddresses(interface)
    except (ValueError, KeyError, OSError) as e:
        logger.error("Failed to get addresses for interface", interface=interface, error=str(e))
        return addresses

    for entry in addr_info.get(netifaces.AF_INET, []):
        if entry.get("addr"):
            addresses.append(entry["addr"])
    if include_ipv6:
        for entry in addr_info.get(netifaces.AF_INET6, []):
            addr = entry.get("addr")
            if not addr:
                continue
            if not keep_scope:
                addr = addr.split("%")[0]
            elif addr.lower().startswith("fe80") and "%" not in addr:
                addr = f"{addr}%{interface}"
            addresses.append(addr)
    return addresses


def get_active_interfaces() -> List[str]:
    """Names of non-loopback interfaces that have at least one address."""
    return [iface for iface in get_network_interfaces() if get_interface_ips(iface)]


def get_discovery_addresses(include_ipv6: bool = False) -> List[str]:
    """Every bindable local address on active interfaces."""
    addresses: List[str] = []
    for iface in get_active_interfaces():
        for addr in get_interface_ips(iface, include_ipv6=include_ipv6, keep_scope=True):
            if addr not in addresses:
                addresses.append(addr)
    return addresses


def resolve_interfaces(
    interfaces: List[str],
    use_all_interfaces: bool = False,
    include_ipv6: bool = False,
) -> List[Optional[str]]:
    """Turn configured interface settings into the list a SearchRequest takes.

    Explicit addresses win; otherwise all local addresses when requested;
    otherwise the default interface (``[None]``).
    """
    if interfaces:
        return list(interfaces)
    if use_all_interfaces:
        addresses = get_discovery_addresses(include_ipv6=include_ipv6)
        if addresses:
            return list(addresses)
        logger.warning("No local addresses found, falling back to the default interface")
    return [None]
