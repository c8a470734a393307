import socket
import struct

import pytest


def rcon_frame(id, type, body=b""):
    """Raw frame as a Source server would put it on the wire."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return struct.pack("<iii", 10 + len(body), id, type) + body + b"\x00\x00"


class FakeConn:
    """Socket double fed from a script of inbound data.

    ``datagram=True`` hands out one queued item per ``recv`` (UDP), otherwise
    the queued items form one byte stream cut into ``chunk``-sized reads (TCP).
    An empty queue times out, unless ``eof`` is set.
    """

    def __init__(self, datagram=False, chunk=None):
        self.datagram = datagram
        self.chunk = chunk
        self.inbound = []
        self.sent = []
        self.timeouts = []
        self.eof = False
        self.closed = False
        self.recv_calls = 0

    def feed(self, *items):
        self.inbound.extend(items)

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def send(self, data):
        self.sent.append(bytes(data))
        return len(data)

    def sendall(self, data):
        self.sent.append(bytes(data))

    def recv(self, n):
        self.recv_calls += 1
        if not self.inbound:
            if self.eof:
                return b""
            raise socket.timeout("timed out")
        if self.datagram:
            return self.inbound.pop(0)[:n]
        head = self.inbound[0]
        size = min(n, len(head), self.chunk or n)
        out, rest = head[:size], head[size:]
        if rest:
            self.inbound[0] = rest
        else:
            self.inbound.pop(0)
        return out

    def close(self):
        self.closed = True


class FakeDialer:
    def __init__(self):
        self.udp = FakeConn(datagram=True)
        self.tcp = FakeConn()
        self.calls = []
        self.fail = {}

    def __call__(self, network, address):
        self.calls.append((network, address))
        if network in self.fail:
            raise self.fail[network]
        return self.udp if network == "udp" else self.tcp


@pytest.fixture
def dialer():
    return FakeDialer()
