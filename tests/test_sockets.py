import socket
import struct
import time

import pytest

from conftest import FakeConn, rcon_frame
from steamserver.errors import (BadData, CouldNotReadData, NotEnoughDataInResponse,
                                TransportError, TransportTimeout)
from steamserver.sockets import QuerySocket, RCONSocket, default_dial, parse_address

ADDR = ("127.0.0.1", 27015)


def test_parse_address():
    assert parse_address("10.0.0.1:27016") == ("10.0.0.1", 27016)
    assert parse_address("l4d2.example.com") == ("l4d2.example.com", 27015)
    assert parse_address("[::1]:27015") == ("::1", 27015)
    for bad in ("1.2.3.4:abc", "1.2.3.4:0", "1.2.3.4:70000", "1.2.3.4:"):
        with pytest.raises(ValueError, match="bad port"):
            parse_address(bad)
    with pytest.raises(ValueError):
        parse_address("")


def test_query_socket_sets_deadline_for_each_operation(dialer):
    sock = QuerySocket(dialer, ADDR, timeout=0.4)
    dialer.udp.feed(b"pong")
    sock.send(b"ping")
    assert sock.receive() == b"pong"
    assert dialer.udp.sent == [b"ping"]
    assert dialer.udp.timeouts == [0.4, 0.4]
    assert dialer.calls == [("udp", ADDR)]


def test_query_socket_timeout(dialer):
    sock = QuerySocket(dialer, ADDR)
    with pytest.raises(TransportTimeout) as exc:
        sock.receive()
    assert isinstance(exc.value.__cause__, socket.timeout)


def test_query_socket_dial_failure(dialer):
    dialer.fail["udp"] = ConnectionRefusedError("refused")
    with pytest.raises(TransportError):
        QuerySocket(dialer, ADDR)


def test_rcon_socket_reassembles_partial_reads(dialer):
    dialer.tcp.chunk = 3
    frame = rcon_frame(9, 0, "a" * 50)
    dialer.tcp.feed(frame)
    sock = RCONSocket(dialer, ADDR, timeout=0.4)
    assert sock.receive() == frame
    # one deadline per chunk
    assert len(dialer.tcp.timeouts) == dialer.tcp.recv_calls
    assert dialer.tcp.recv_calls > 2


def test_rcon_socket_reads_frames_one_at_a_time(dialer):
    first, second = rcon_frame(1, 0, "one"), rcon_frame(2, 0, "two")
    dialer.tcp.feed(first + second)
    sock = RCONSocket(dialer, ADDR)
    assert sock.receive() == first
    assert sock.receive() == second


def test_rcon_socket_eof_in_payload(dialer):
    dialer.tcp.feed(rcon_frame(1, 0, "truncated")[:-4])
    dialer.tcp.eof = True
    with pytest.raises(NotEnoughDataInResponse):
        RCONSocket(dialer, ADDR).receive()


def test_rcon_socket_eof_in_length_prefix(dialer):
    dialer.tcp.feed(b"\x0a\x00")
    dialer.tcp.eof = True
    with pytest.raises(CouldNotReadData):
        RCONSocket(dialer, ADDR).receive()


def test_rcon_socket_rejects_negative_size(dialer):
    dialer.tcp.feed(struct.pack("<i", -5))
    with pytest.raises(BadData):
        RCONSocket(dialer, ADDR).receive()


def test_rcon_socket_send_writes_whole_buffer(dialer):
    sock = RCONSocket(dialer, ADDR)
    sock.send(b"\x0a\x00\x00\x00" + b"\x00" * 10)
    assert dialer.tcp.sent == [b"\x0a\x00\x00\x00" + b"\x00" * 10]


def test_rcon_socket_reset_is_transport_error(dialer):
    sock = RCONSocket(dialer, ADDR)

    def reset(n):
        raise ConnectionResetError("reset by peer")

    dialer.tcp.recv = reset
    with pytest.raises(TransportError) as exc:
        sock.receive()
    assert not isinstance(exc.value, TransportTimeout)


def test_close_is_quiet():
    conn = FakeConn()
    sock = RCONSocket(lambda network, address: conn, ADDR)
    sock.close()
    assert conn.closed


def test_silent_udp_peer_times_out():
    silent = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    silent.bind(("127.0.0.1", 0))
    try:
        sock = QuerySocket(default_dial, silent.getsockname(), timeout=0.2)
        try:
            sock.send(b"\xff\xff\xff\xffTSource Engine Query\x00")
            start = time.monotonic()
            with pytest.raises(TransportTimeout):
                sock.receive()
            assert time.monotonic() - start < 2
        finally:
            sock.close()
    finally:
        silent.close()
