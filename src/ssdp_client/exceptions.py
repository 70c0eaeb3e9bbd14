"""
Custom exceptions for the SSDP client.
"""
from typing import Optional


class SSDPClientError(Exception):
    """Base class for all SSDP client errors."""
    pass


class SetupError(SSDPClientError):
    """Raised when a socket for one interface could not be created, bound,
    or used to send the search request. Contained to that interface."""
    def __init__(self, interface: Optional[str], message: str):
        super().__init__(f"Socket setup failed on interface {interface or 'default'}: {message}")
        self.interface = interface
        self.original_message = message


class ReadError(SSDPClientError):
    """Raised for receive failures that were not caused by closing the socket."""
    def __init__(self, interface: Optional[str], message: str):
        super().__init__(f"Read failed on interface {interface or 'default'}: {message}")
        self.interface = interface
        self.original_message = message


class DecodeError(SSDPClientError):
    """Raised when a datagram payload is not valid UTF-8 text."""
    def __init__(self, host: str, size: int):
        super().__init__(f"Got {size} bytes from {host} but could not decode them as UTF-8")
        self.host = host
        self.size = size


class SessionStateError(SSDPClientError):
    """Raised when a discovery session is driven out of order
    (e.g. start() while already running, or a call from outside its event loop)."""
    pass
