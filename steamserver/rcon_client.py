import logging
import random
from enum import Enum
from typing import Optional, Union

from .errors import (InvalidResponseID, InvalidResponseTrailer,
                     InvalidResponseType, RCONAuthFailed, RCONNotInitialized)
from .rcon_packet import TRAILER, PacketType, RCONRequest, RCONResponse
from .sockets import RCONSocket

logger = logging.getLogger(__name__)

_MAX_ID = 2 ** 31 - 1


class RequestIDs:
    """Incrementing RCON request ids, owned by one connection.

    Ids stay in 1..2**31-1 so they can never collide with the -1 a server
    uses to reject authentication.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = random.randint(1, _MAX_ID)
        if not 1 <= seed <= _MAX_ID:
            raise ValueError(f"steam: rcon request id seed must be in 1..{_MAX_ID}, got {seed}")
        self._next = seed

    def __call__(self) -> int:
        id = self._next
        self._next = 1 if id >= _MAX_ID else id + 1
        return id


class State(Enum):
    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class RCONClient:
    """Source RCON session over an already opened RCONSocket.

    Not reentrant: callers must make sure only one exchange is in flight.
    """

    def __init__(self, sock: RCONSocket, ids: RequestIDs):
        self.sock = sock
        self._ids = ids
        self.state = State.DISCONNECTED

    @property
    def authenticated(self) -> bool:
        return self.state is State.AUTHENTICATED

    def _send_packet(self, packet_type: PacketType, body: Union[str, bytes]) -> int:
        req = RCONRequest(self._ids(), packet_type, body)
        self.sock.send(req.marshal())
        logger.debug(f"rcon -> {self.sock.address}: id={req.id} type={req.type.name}")
        return req.id

    def _read_packet(self) -> RCONResponse:
        resp = RCONResponse.unmarshal(self.sock.receive())
        logger.debug(f"rcon <- {self.sock.address}: id={resp.id} type={int(resp.type)} {len(resp.body)}B")
        return resp

    def authenticate(self, password: str):
        self.state = State.AUTHENTICATING
        try:
            auth_id = self._send_packet(PacketType.AUTH, password)

            # The server first answers with an empty RESPONSE_VALUE ...
            resp = self._read_packet()
            if resp.type != PacketType.RESPONSE_VALUE:
                raise InvalidResponseType()
            if resp.id != auth_id:
                raise InvalidResponseID()

            # ... then with the verdict; id -1 means a wrong password.
            resp = self._read_packet()
            if resp.type != PacketType.AUTH_RESPONSE or resp.id != auth_id:
                logger.warning(f"rcon authentication rejected by {self.sock.address} (id={resp.id})")
                raise RCONAuthFailed()
        except Exception:
            self.state = State.DISCONNECTED
            raise
        self.state = State.AUTHENTICATED
        logger.info(f"rcon authenticated with {self.sock.address}")

    def execute(self, command: str) -> str:
        if not self.authenticated:
            raise RCONNotInitialized()

        cmd_id = self._send_packet(PacketType.EXEC_COMMAND, command)
        # Source RCON never says when a multi-packet reply is over. The server
        # mirrors an empty RESPONSE_VALUE only after all output for the command
        # before it, followed by one frame whose body is TRAILER.
        mirror_id = self._send_packet(PacketType.RESPONSE_VALUE, "")

        output = []
        saw_mirror = False
        while True:
            resp = self._read_packet()
            if resp.type != PacketType.RESPONSE_VALUE:
                raise InvalidResponseType()
            if saw_mirror:
                if resp.body == TRAILER:
                    break
                raise InvalidResponseTrailer()
            if resp.id == mirror_id:
                saw_mirror = True
                continue
            if resp.id != cmd_id:
                raise InvalidResponseID()
            output.append(resp.body)

        logger.debug(f"rcon command id={cmd_id} finished in {len(output)} fragment(s)")
        return b"".join(output).decode("utf-8", errors="replace")
