"""Tests for the per-socket ResponseReader."""
from unittest.mock import MagicMock

import pytest

from ssdp_client.discovery.reader import ResponseReader
from ssdp_client.exceptions import ReadError


@pytest.fixture
def received():
    return []


@pytest.fixture
def reader(received, mock_logger):
    r = ResponseReader("192.168.1.10", received.append, parent_logger=mock_logger)
    r.connection_made(MagicMock())
    return r


@pytest.mark.asyncio
async def test_valid_datagram_yields_one_service(reader, received):
    reader.datagram_received("HTTP/1.1 200 OK\r\nST: ssdp:all\r\n\r\n".encode("utf-8"), ("203.0.113.7", 1900))

    assert len(received) == 1
    assert received[0].host == "203.0.113.7"
    assert received[0].response == "HTTP/1.1 200 OK\r\nST: ssdp:all\r\n\r\n"


@pytest.mark.asyncio
async def test_invalid_utf8_is_dropped_and_reading_continues(reader, received, mock_logger):
    reader.datagram_received(b"\xff\xfe\xfa not utf-8", ("203.0.113.7", 1900))
    assert received == []
    assert not reader.closed.is_set()
    reader.transport.close.assert_not_called()

    reader.datagram_received("HTTP/1.1 200 OK\r\n\r\n".encode("utf-8"), ("203.0.113.7", 1900))
    assert len(received) == 1
    assert reader.datagrams_received == 2
    assert "Dropping undecodable datagram" in [c.args[0] for c in mock_logger.debug.call_args_list]


@pytest.mark.asyncio
async def test_empty_datagram_is_ignored(reader, received):
    reader.datagram_received(b"", ("203.0.113.7", 1900))
    assert received == []
    assert reader.error is None


@pytest.mark.asyncio
async def test_receive_error_ends_only_this_reader(reader, received, mock_logger):
    transport = reader.transport
    reader.error_received(ConnectionRefusedError("Connection refused"))

    assert isinstance(reader.error, ReadError)
    assert reader.error.interface == "192.168.1.10"
    transport.close.assert_called_once()
    mock_logger.error.assert_called_once()

    reader.connection_lost(None)
    assert reader.closed.is_set()


@pytest.mark.asyncio
async def test_close_by_session_is_silent(reader, mock_logger):
    reader.connection_lost(None)

    assert reader.closed.is_set()
    assert reader.error is None
    assert reader.transport is None
    mock_logger.error.assert_not_called()


@pytest.mark.asyncio
async def test_connection_lost_with_error_is_recorded(reader):
    reader.connection_lost(OSError("Bad file descriptor"))

    assert isinstance(reader.error, ReadError)
    assert reader.closed.is_set()
