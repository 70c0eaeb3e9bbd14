"""SSDP message framing: the M-SEARCH request and reply decoding."""

from ..exceptions import DecodeError


def format_host(group: str, port: int) -> str:
    """Return ``group:port`` for the HOST header.

    IPv6 groups are not bracketed: ``ff02::c:1900``.
    """
    return f"{group}:{port}"


def build_search_request(search_target: str, group: str, port: int, wait_hint: int) -> str:
    """Build the M-SEARCH request sent to the multicast group.

    Args:
        search_target: Service type to search for (ST header).
        group: Multicast group the request is addressed to.
        port: Multicast group port.
        wait_hint: Maximum reply delay in seconds (MX header).

    Returns:
        str: The request text. Header order and casing are fixed.
    """
    return (
        "M-SEARCH * HTTP/1.1\r\n"
        'MAN: "ssdp:discover"\r\n'
        f"HOST: {format_host(group, port)}\r\n"
        f"ST: {search_target}\r\n"
        f"MX: {int(wait_hint)}\r\n\r\n"
    )


def decode_datagram(data: bytes, host: str) -> str:
    """Decode one datagram as UTF-8. Raises DecodeError on invalid bytes."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(host, len(data)) from e


def parse_headers(response: str) -> dict[str, str]:
    """Parse the headers of an HTTP-shaped SSDP reply.

    The status line is skipped and parsing stops at the first blank line.
    Header names are lower-cased; lines without a colon are ignored.
    """
    headers: dict[str, str] = {}
    lines = response.splitlines()
    for line in lines[1:]:
        if not line.strip():
            break
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            continue
        headers[name.strip().lower()] = value.strip()
    return headers
