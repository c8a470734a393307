"""RCON frames.

Wire layout, all integers little-endian::

    size  int32   bytes that follow this field
    id    int32   chosen by the client, echoed by the server
    type  int32   see PacketType
    body  bytes   null terminated
    ''    byte    empty string terminator
"""

from enum import IntEnum
from typing import Union

from .errors import BadData, NotEnoughDataInResponse
from .wire import ByteReader, ByteWriter

# id + type + body terminator + empty string
_FRAME_OVERHEAD = 4 + 4 + 1 + 1

# Body of the frame the server sends after echoing an empty RESPONSE_VALUE.
TRAILER = b"\x00\x01\x00\x00"


class PacketType(IntEnum):
    # AUTH_RESPONSE is an alias of EXEC_COMMAND; direction tells them apart.
    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    AUTH_RESPONSE = 2
    AUTH = 3


_RESPONSE_TYPES = frozenset((PacketType.RESPONSE_VALUE, PacketType.AUTH_RESPONSE))


class RCONRequest:
    def __init__(self, id: int, type: PacketType, body: Union[str, bytes] = b""):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.id = id
        self.type = PacketType(type)
        self.body = body

    def __repr__(self):
        return f"<RCONRequest id={self.id} type={self.type.name} {len(self.body)}B>"

    def marshal(self) -> bytes:
        w = ByteWriter()
        w.write_int32(_FRAME_OVERHEAD + len(self.body))
        w.write_int32(self.id)
        w.write_int32(self.type)
        w.write_string(self.body)
        w.write_string(b"")
        return w.getvalue()


class RCONResponse:
    def __init__(self, id: int, type: PacketType, body: bytes = b""):
        self.id = id
        self.type = type
        self.body = body

    def __repr__(self):
        return f"<RCONResponse id={self.id} type={self.type.name} {len(self.body)}B>"

    @classmethod
    def unmarshal(cls, data: bytes) -> "RCONResponse":
        r = ByteReader(data)
        size = r.read_int32()
        if size < _FRAME_OVERHEAD:
            raise BadData(f"steam: rcon frame size {size} is too small")
        if r.remaining() < size:
            raise NotEnoughDataInResponse()
        id = r.read_int32()
        raw_type = r.read_int32()
        if raw_type not in _RESPONSE_TYPES:
            raise BadData(f"steam: unknown rcon response type {raw_type}")
        # drop the two trailing null bytes
        body = r.read_bytes(size - 4 - 4)[:-2]
        return cls(id, PacketType(raw_type), body)
