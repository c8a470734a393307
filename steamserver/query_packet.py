"""A2S query requests and replies.

https://developer.valvesoftware.com/wiki/Server_queries
"""

from typing import Iterator, List, Optional

from .errors import BadData
from .wire import REQUEST_PREFIX, ByteReader, ByteWriter, to_int

A2S_INFO = 0x54
A2S_PLAYER = 0x55

S2C_CHALLENGE = 0x41
S2A_INFO_SOURCE = 0x49
S2A_INFO_GOLDSRC = 0x6D
S2A_PLAYER = 0x44

SINGLE_PACKET = -1
SPLIT_PACKET = -2

NO_CHALLENGE = -1
THE_SHIP_APP_ID = 2400

EDF_PORT = 0x80
EDF_STEAM_ID = 0x10
EDF_SOURCE_TV = 0x40
EDF_KEYWORDS = 0x20
EDF_GAME_ID = 0x01


def is_challenge_response(data: bytes) -> bool:
    return len(data) >= 5 and data[:4] == REQUEST_PREFIX and data[4] == S2C_CHALLENGE


def _open_reply(data: bytes, *tags: int):
    r = ByteReader(data)
    header = r.read_int32()
    if header == SPLIT_PACKET:
        raise BadData("steam: split query responses are not supported")
    if header != SINGLE_PACKET:
        raise BadData(f"steam: bad query response header {header:#x}")
    tag = r.read_byte()
    if tag not in tags:
        raise BadData(f"steam: unexpected query response type {tag:#04x}")
    return r, tag


class InfoRequest:
    def __init__(self, challenge: Optional[int] = None):
        self.challenge = challenge

    def marshal(self) -> bytes:
        w = ByteWriter()
        w.write_request_prefix()
        w.write_byte(A2S_INFO)
        w.write_string("Source Engine Query")
        if self.challenge is not None:
            w.write_int32(self.challenge)
        return w.getvalue()


class PlayersRequest:
    def __init__(self, challenge: Optional[int] = None):
        self.challenge = challenge

    def marshal(self) -> bytes:
        w = ByteWriter()
        w.write_request_prefix()
        w.write_byte(A2S_PLAYER)
        w.write_int32(NO_CHALLENGE if self.challenge is None else self.challenge)
        return w.getvalue()


class ChallengeResponse:
    def __init__(self, challenge: int):
        self.challenge = challenge

    @classmethod
    def unmarshal(cls, data: bytes) -> "ChallengeResponse":
        r, _ = _open_reply(data, S2C_CHALLENGE)
        return cls(r.read_int32())


class InfoResponse:
    """Server information (A2S_INFO reply).

    Attribute names follow python-a2s so callers can switch between the two.
    ``ping`` is filled in by the query client with the round trip, in seconds,
    of the request that produced this reply.
    """

    def __init__(self, **fields):
        self.engine = "source"
        self.protocol = 0
        self.server_name = ""
        self.map_name = ""
        self.folder = ""
        self.game = ""
        self.app_id = 0
        self.player_count = 0
        self.max_players = 0
        self.bot_count = 0
        self.server_type = ""
        self.platform = ""
        self.password_protected = False
        self.vac_enabled = False
        self.version = ""
        self.address = ""
        self.port = None
        self.steam_id = None
        self.stv_port = None
        self.stv_name = None
        self.keywords = None
        self.game_id = None
        self.ship_mode = None
        self.ship_witnesses = None
        self.ship_duration = None
        self.mod = None
        self.ping = None
        for k, v in fields.items():
            setattr(self, k, v)

    def __repr__(self):
        return (f"<InfoResponse {self.server_name!r} map={self.map_name!r} "
                f"players={self.player_count}/{self.max_players}>")

    @classmethod
    def unmarshal(cls, data: bytes) -> "InfoResponse":
        r, tag = _open_reply(data, S2A_INFO_SOURCE, S2A_INFO_GOLDSRC)
        if tag == S2A_INFO_GOLDSRC:
            return cls._unmarshal_goldsrc(r)
        return cls._unmarshal_source(r)

    @classmethod
    def _unmarshal_source(cls, r: ByteReader) -> "InfoResponse":
        res = cls()
        res.protocol = r.read_byte()
        res.server_name = r.read_string()
        res.map_name = r.read_string()
        res.folder = r.read_string()
        res.game = r.read_string()
        res.app_id = r.read_uint16()
        res.player_count = r.read_byte()
        res.max_players = r.read_byte()
        res.bot_count = r.read_byte()
        res.server_type = chr(r.read_byte())
        res.platform = chr(r.read_byte())
        res.password_protected = r.read_byte() == 1
        res.vac_enabled = r.read_byte() == 1
        if res.app_id == THE_SHIP_APP_ID:
            res.ship_mode = r.read_byte()
            res.ship_witnesses = r.read_byte()
            res.ship_duration = r.read_byte()
        res.version = r.read_string()

        # Extra Data Flag is optional
        if r.remaining() == 0:
            return res
        edf = r.read_byte()
        if edf & EDF_PORT:
            res.port = r.read_uint16()
        if edf & EDF_STEAM_ID:
            res.steam_id = r.read_uint64()
        if edf & EDF_SOURCE_TV:
            res.stv_port = r.read_uint16()
            res.stv_name = r.read_string()
        if edf & EDF_KEYWORDS:
            res.keywords = r.read_string()
        if edf & EDF_GAME_ID:
            res.game_id = r.read_uint64()
        return res

    @classmethod
    def _unmarshal_goldsrc(cls, r: ByteReader) -> "InfoResponse":
        res = cls(engine="goldsrc")
        res.address = r.read_string()
        res.port = to_int(res.address.rpartition(":")[2])
        res.server_name = r.read_string()
        res.map_name = r.read_string()
        res.folder = r.read_string()
        res.game = r.read_string()
        res.player_count = r.read_byte()
        res.max_players = r.read_byte()
        res.protocol = r.read_byte()
        res.server_type = chr(r.read_byte())
        res.platform = chr(r.read_byte())
        res.password_protected = r.read_byte() == 1
        if r.read_byte() == 1:
            res.mod = {
                "link": r.read_string(),
                "download_link": r.read_string(),
            }
            r.read_byte()  # null
            res.mod["version"] = r.read_int32()
            res.mod["size"] = r.read_int32()
            res.mod["multiplayer_only"] = r.read_byte() == 1
            res.mod["custom_dll"] = r.read_byte() == 1
        res.vac_enabled = r.read_byte() == 1
        res.bot_count = r.read_byte()
        return res


class Player:
    def __init__(self, index: int, name: str, score: int, duration: float):
        self.index = index
        self.name = name
        self.score = score
        self.duration = duration

    def __repr__(self):
        return f"<Player {self.name!r} score={self.score} duration={self.duration:.0f}s>"


class PlayersInfoResponse:
    """Player list (A2S_PLAYER reply), in the order the server sent it."""

    def __init__(self, players: List[Player]):
        self.players = players

    def __iter__(self) -> Iterator[Player]:
        return iter(self.players)

    def __len__(self):
        return len(self.players)

    @classmethod
    def unmarshal(cls, data: bytes) -> "PlayersInfoResponse":
        r, _ = _open_reply(data, S2A_PLAYER)
        count = r.read_byte()
        players = []
        for _ in range(count):
            players.append(Player(
                index=r.read_byte(),
                name=r.read_string(),
                score=r.read_int32(),
                duration=r.read_float32(),
            ))
        return cls(players)
