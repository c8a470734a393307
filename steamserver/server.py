import functools
import logging
import threading
from typing import Optional

from .errors import RCONNotInitialized, TransportError
from .query_client import QueryClient
from .query_packet import InfoResponse, PlayersInfoResponse
from .rcon_client import RCONClient, RequestIDs
from .sockets import (DEFAULT_DIAL_TIMEOUT, DEFAULT_TIMEOUT, Dialer,
                      QuerySocket, RCONSocket, default_dial, parse_address)

logger = logging.getLogger(__name__)


class ConnectOptions:
    """Connection settings.

    :param dial: ``dial(network, (host, port))`` returning a socket-like
        object; ``network`` is ``"udp"`` or ``"tcp"``. Defaults to real sockets.
    :param rcon_password: RCON is only set up when this is not empty.
    :param timeout: deadline in seconds for every single read or write.
    :param dial_timeout: connect timeout for the default dialer.
    :param request_id_seed: first RCON request id, random when ``None``.
    """

    def __init__(self, dial: Optional[Dialer] = None, rcon_password: str = "",
                 timeout: float = DEFAULT_TIMEOUT,
                 dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
                 request_id_seed: Optional[int] = None):
        self.dial = dial
        self.rcon_password = rcon_password
        self.timeout = timeout
        self.dial_timeout = dial_timeout
        self.request_id_seed = request_id_seed


class Server:
    """A Source engine game server.

    All public methods hold one lock, so a Server can be shared between
    threads but only ever has a single exchange on the wire.
    """

    def __init__(self, address: str, options: Optional[ConnectOptions] = None):
        self.address = address
        self.options = options or ConnectOptions()
        self._target = parse_address(address)
        self._dial = self.options.dial or functools.partial(
            default_dial, timeout=self.options.dial_timeout)
        self._ids = RequestIDs(self.options.request_id_seed)
        self._lock = threading.Lock()
        self._query = None
        self._rcon = None

    @classmethod
    def connect(cls, address: str, options: Optional[ConnectOptions] = None) -> "Server":
        server = cls(address, options)
        server._open()
        return server

    def __str__(self):
        return self.address

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def rcon_enabled(self) -> bool:
        return self._rcon is not None

    def _open(self):
        usock = QuerySocket(self._dial, self._target, self.options.timeout)
        self._query = QueryClient(usock)
        if not self.options.rcon_password:
            logger.info(f"connected to {self.address} (query only)")
            return
        try:
            self._open_rcon()
        except Exception:
            usock.close()
            self._query = None
            raise
        logger.info(f"connected to {self.address} (query + rcon)")

    def _open_rcon(self):
        rsock = RCONSocket(self._dial, self._target, self.options.timeout)
        client = RCONClient(rsock, self._ids)
        try:
            client.authenticate(self.options.rcon_password)
        except Exception:
            rsock.close()
            raise
        self._rcon = client

    def close(self):
        """释放 UDP / RCON 连接，可重复调用"""
        with self._lock:
            if self._rcon is not None:
                self._rcon.sock.close()
                self._rcon = None
            if self._query is not None:
                self._query.sock.close()
                self._query = None

    def _queries(self) -> QueryClient:
        if self._query is None:
            raise TransportError(f"steam: connection to {self.address} is closed")
        return self._query

    def ping(self) -> float:
        with self._lock:
            return self._queries().ping()

    def info(self) -> InfoResponse:
        with self._lock:
            return self._queries().info()

    def players_info(self) -> PlayersInfoResponse:
        with self._lock:
            return self._queries().players()

    def send(self, command: str) -> str:
        """通过 RCON 执行指令并返回完整输出"""
        with self._lock:
            if self._rcon is None:
                raise RCONNotInitialized()
            return self._rcon.execute(command)


def connect(address: str, options: Optional[ConnectOptions] = None) -> Server:
    """Open the query socket and, with a password, an authenticated RCON session."""
    return Server.connect(address, options)
