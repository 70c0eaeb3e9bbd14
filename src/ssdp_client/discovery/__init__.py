"""
SSDP discovery engine.

Submodules, leaf-first:
    network        - interface enumeration and multicast group resolution
    message        - M-SEARCH framing and reply parsing
    provisioner    - per-interface socket setup
    reader         - per-socket response reader
    session        - the discovery session coordinating all of the above
    discovery_service - async generator facade driven by configuration

Import from the submodules directly; this package does not re-export them
because the models package depends on ``message``.
"""

__all__ = [
    "discovery_service",
    "message",
    "network",
    "provisioner",
    "reader",
    "session",
]
