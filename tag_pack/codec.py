"""
Index encoding.

The index is written as-is: callers sort it (by tag, when finishing)
before encoding.
"""

import io
from typing import BinaryIO

from .errors import CorruptIndex
from .model import MIN_ENTRY_SIZE, ContainerIndex, Entry
from .varint import decode_varint, write_varint


def encode_index(index: ContainerIndex) -> bytes:
    out = io.BytesIO()
    write_varint(out, len(index))
    for entry in index:
        write_varint(out, len(entry.tag))
        out.write(entry.tag)
        write_varint(out, entry.offset)
        write_varint(out, entry.size)
    return out.getvalue()


def decode_index(source: BinaryIO, index_offset: int) -> ContainerIndex:
    """Read everything from index_offset to the end of source as an index."""
    source.seek(index_offset)
    data = memoryview(source.read())

    try:
        count, pos = decode_varint(data)
        if count * MIN_ENTRY_SIZE > len(data) - pos:
            raise CorruptIndex(
                f"Index declares {count} entries but only "
                f"{len(data) - pos} bytes follow"
            )

        entries = []
        for _ in range(count):
            tag_len, pos = decode_varint(data, pos)
            if pos + tag_len > len(data):
                raise CorruptIndex(
                    f"Tag of {tag_len} bytes at {index_offset + pos} runs past end of file"
                )
            tag = data[pos : pos + tag_len].tobytes()
            pos += tag_len

            offset, pos = decode_varint(data, pos)
            size, pos = decode_varint(data, pos)
            entries.append(Entry(tag, offset, size))
    except ValueError as e:
        raise CorruptIndex(f"Truncated index at {index_offset}: {e}") from e

    return ContainerIndex(entries)
