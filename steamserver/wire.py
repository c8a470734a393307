"""Little-endian primitives shared by the query and RCON packets."""

import struct
from typing import Union

from .errors import BadData, CouldNotReadData

REQUEST_PREFIX = b"\xFF\xFF\xFF\xFF"

_INT16 = struct.Struct("<h")
_UINT16 = struct.Struct("<H")
_INT32 = struct.Struct("<i")
_UINT32 = struct.Struct("<I")
_INT64 = struct.Struct("<q")
_UINT64 = struct.Struct("<Q")
_FLOAT32 = struct.Struct("<f")


class ByteReader:
    """Sequential reader over a received payload.

    Every read consumes from the front of the buffer and raises
    ``CouldNotReadData`` when fewer bytes remain than requested.
    """

    def __init__(self, data: bytes, offset: int = 0):
        self._data = bytes(data)
        self._pos = offset

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_bytes(self, n: int) -> bytes:
        if n < 0 or self.remaining() < n:
            raise CouldNotReadData()
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def read_rest(self) -> bytes:
        return self.read_bytes(self.remaining())

    def read_byte(self) -> int:
        return self.read_bytes(1)[0]

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_int16(self) -> int:
        return self._unpack(_INT16)

    def read_uint16(self) -> int:
        return self._unpack(_UINT16)

    def read_int32(self) -> int:
        return self._unpack(_INT32)

    def read_uint32(self) -> int:
        return self._unpack(_UINT32)

    def read_int64(self) -> int:
        return self._unpack(_INT64)

    def read_uint64(self) -> int:
        return self._unpack(_UINT64)

    def read_float32(self) -> float:
        # reinterpret the raw uint32 bits as an IEEE-754 single
        bits = self.read_uint32()
        return _FLOAT32.unpack(_UINT32.pack(bits))[0]

    def read_string(self) -> str:
        end = self._data.find(b"\x00", self._pos)
        if end < 0:
            raise CouldNotReadData()
        raw = self._data[self._pos:end]
        self._pos = end + 1
        return raw.decode("utf-8", errors="replace")


class ByteWriter:
    def __init__(self):
        self._buf = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def write(self, data: bytes):
        self._buf += data

    def write_request_prefix(self):
        self._buf += REQUEST_PREFIX

    def write_byte(self, v: int):
        self._buf.append(v & 0xFF)

    def write_int32(self, v: int):
        self._buf += _INT32.pack(v)

    def write_null(self):
        self._buf.append(0)

    def write_string(self, v: Union[str, bytes]):
        if isinstance(v, str):
            v = v.encode("utf-8")
        self._buf += v
        self._buf.append(0)


def to_int(value: Union[int, str, bytes]) -> int:
    """Normalize a decoded wire value (byte, short, long, string) to an int."""
    if isinstance(value, bool):
        raise BadData()
    if isinstance(value, int):
        return value
    if isinstance(value, (str, bytes)):
        try:
            return int(value)
        except ValueError:
            raise BadData() from None
    raise BadData()
