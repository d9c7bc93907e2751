"""
Unsigned LEB128 varints, as used by the container index.

Values 0-127 take one byte; every further 7 bits add a byte. The high bit
of each byte marks that more bytes follow.
"""

from typing import BinaryIO, Tuple, Union

MAX_VARINT_BYTES = 10


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"Cannot encode negative value: {value}")

    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: Union[bytes, memoryview], offset: int = 0) -> Tuple[int, int]:
    """
    Decode a varint starting at ``offset``.

    Returns (value, new_offset). Raises ValueError if the data ends before
    the terminating byte or the value is longer than 10 bytes.
    """
    result = 0
    shift = 0
    pos = offset

    for _ in range(MAX_VARINT_BYTES):
        if pos >= len(data):
            raise ValueError(f"Incomplete varint at offset {offset}")

        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7

    raise ValueError(f"Varint too long at offset {offset}")


def write_varint(stream: BinaryIO, value: int) -> int:
    return stream.write(encode_varint(value))

