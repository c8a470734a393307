import logging
import time

from .query_packet import (ChallengeResponse, InfoRequest, InfoResponse,
                           PlayersInfoResponse, PlayersRequest,
                           is_challenge_response)
from .sockets import QuerySocket

logger = logging.getLogger(__name__)


class QueryClient:
    """A2S info/player queries with the anti-spoofing challenge round trip."""

    def __init__(self, sock: QuerySocket):
        self.sock = sock

    def _round_trip(self, req):
        start = time.monotonic()
        self.sock.send(req.marshal())
        data = self.sock.receive()
        return data, time.monotonic() - start

    def _query(self, request_cls):
        data, elapsed = self._round_trip(request_cls())
        if is_challenge_response(data):
            challenge = ChallengeResponse.unmarshal(data).challenge
            logger.debug(f"{self.sock.address} asked for challenge {challenge:#010x}")
            # One retry only: a second challenge is handed to the caller's
            # parser as if it were the real reply.
            data, elapsed = self._round_trip(request_cls(challenge))
        return data, elapsed

    def ping(self) -> float:
        """Seconds until the first datagram comes back. The reply is not parsed."""
        _, elapsed = self._round_trip(InfoRequest())
        return elapsed

    def info(self) -> InfoResponse:
        data, elapsed = self._query(InfoRequest)
        res = InfoResponse.unmarshal(data)
        res.ping = elapsed
        return res

    def players(self) -> PlayersInfoResponse:
        data, _ = self._query(PlayersRequest)
        return PlayersInfoResponse.unmarshal(data)
