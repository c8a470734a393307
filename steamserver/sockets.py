import logging
import socket
from contextlib import contextmanager
from typing import Callable, Tuple

from .errors import (BadData, CouldNotReadData, NotEnoughDataInResponse,
                     TransportError, TransportTimeout)
from .wire import ByteReader

logger = logging.getLogger(__name__)

DEFAULT_PORT = 27015
DEFAULT_TIMEOUT = 0.4
DEFAULT_DIAL_TIMEOUT = 1.0

# Large enough for any single datagram the kernel will hand us.
MAX_DATAGRAM_SIZE = 65535
# Source servers never send frames anywhere near this; anything bigger is garbage.
MAX_RCON_FRAME_SIZE = 1 << 20

Address = Tuple[str, int]
Dialer = Callable[[str, Address], socket.socket]


def parse_address(address: str) -> Address:
    """Split ``host:port``; the port defaults to 27015."""
    if not address:
        raise ValueError("steam: server needs a address")
    if ":" in address:
        host, _, port = address.rpartition(":")
        try:
            port = int(port)
        except ValueError:
            port = 0
        if not 0 < port < 65536:
            raise ValueError(f"steam: bad port in address {address!r}")
        return host.strip("[]"), port
    return address, DEFAULT_PORT


def default_dial(network: str, address: Address, timeout: float = DEFAULT_DIAL_TIMEOUT):
    """Open a real socket. ``network`` is ``"udp"`` or ``"tcp"``."""
    if network == "tcp":
        return socket.create_connection(address, timeout=timeout)
    if network == "udp":
        host, port = address
        family, type_, proto, _, sockaddr = socket.getaddrinfo(
            host, port, 0, socket.SOCK_DGRAM)[0]
        sock = socket.socket(family, type_, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        return sock
    raise ValueError(f"steam: unknown network {network!r}")


@contextmanager
def _transport(op: str, address: Address):
    try:
        yield
    except socket.timeout as e:
        raise TransportTimeout(f"steam: {op} {address[0]}:{address[1]} timed out") from e
    except OSError as e:
        raise TransportError(f"steam: {op} {address[0]}:{address[1]} ({e})") from e


def _dial(dial: Dialer, network: str, address: Address):
    with _transport(f"could not open {network} socket to", address):
        return dial(network, address)


class QuerySocket:
    """Connectionless socket for the A2S query protocol."""

    def __init__(self, dial: Dialer, address: Address, timeout: float = DEFAULT_TIMEOUT):
        self.address = address
        self.timeout = timeout
        self._conn = _dial(dial, "udp", address)

    def close(self):
        try:
            self._conn.close()
        except OSError as e:
            logger.debug(f"closing udp socket to {self.address}: {e!r}")

    def send(self, data: bytes):
        with _transport("could not send to", self.address):
            self._conn.settimeout(self.timeout)
            self._conn.send(data)
        logger.debug(f"udp -> {self.address}: {len(data)} bytes")

    def receive(self) -> bytes:
        with _transport("could not receive from", self.address):
            self._conn.settimeout(self.timeout)
            data = self._conn.recv(MAX_DATAGRAM_SIZE)
        logger.debug(f"udp <- {self.address}: {len(data)} bytes")
        return bytes(data)


class RCONSocket:
    """Stream socket carrying length-prefixed RCON frames."""

    def __init__(self, dial: Dialer, address: Address, timeout: float = DEFAULT_TIMEOUT):
        self.address = address
        self.timeout = timeout
        self._conn = _dial(dial, "tcp", address)

    def close(self):
        try:
            self._conn.close()
        except OSError as e:
            logger.debug(f"closing tcp socket to {self.address}: {e!r}")

    def send(self, data: bytes):
        # data already carries its own length prefix
        with _transport("could not send to", self.address):
            self._conn.settimeout(self.timeout)
            self._conn.sendall(data)

    def receive(self) -> bytes:
        """Read one whole frame; returns the length prefix and the payload."""
        header = self._read_exact(4, CouldNotReadData)
        size = ByteReader(header).read_int32()
        if size < 0 or size > MAX_RCON_FRAME_SIZE:
            raise BadData(f"steam: bad rcon frame size {size}")
        return header + self._read_exact(size, NotEnoughDataInResponse)

    def _read_exact(self, n: int, short_read) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            # fresh deadline for every chunk
            with _transport("could not receive from", self.address):
                self._conn.settimeout(self.timeout)
                chunk = self._conn.recv(n - len(buf))
            if not chunk:
                raise short_read(
                    f"steam: could not receive data (connection closed after {len(buf)} of {n} bytes)")
            buf += chunk
        return bytes(buf)
