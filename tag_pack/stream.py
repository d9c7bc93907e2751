"""
Byte-range views over a container file.

SourceFile serialises seek+read pairs on a shared handle so several
SectionReaders (and threads) can read it at once. SectionWriter writes
through the container writer's handle at its own position.
"""

import io
import threading
from typing import BinaryIO, Optional


class SourceFile:
    def __init__(self, handle: BinaryIO, owns_handle: bool = True):
        self._handle = handle
        self._owns_handle = owns_handle
        self._lock = threading.Lock()

    def read_at(self, offset: int, length: int) -> bytes:
        with self._lock:
            self._handle.seek(offset)
            return self._handle.read(length)

    def size(self) -> int:
        with self._lock:
            return self._handle.seek(0, io.SEEK_END)

    @property
    def handle(self) -> BinaryIO:
        return self._handle

    def close(self) -> None:
        if self._owns_handle:
            self._handle.close()


class SectionReader:
    """
    Read-only view of [offset, offset + size) in a SourceFile.

    Each view keeps its own cursor; the underlying file is only touched
    through positioned reads.
    """

    def __init__(self, source: SourceFile, offset: int, size: int):
        self._source = source
        self._offset = offset
        self._size = size
        self._pos = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, pos: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            new_pos = pos
        elif whence == io.SEEK_CUR:
            new_pos = self._pos + pos
        elif whence == io.SEEK_END:
            new_pos = self._size + pos
        else:
            raise ValueError(f"Invalid whence: {whence}")

        if new_pos < 0:
            raise ValueError(f"Negative seek position {new_pos}")
        self._pos = new_pos
        return self._pos

    def read_at(self, pos: int, length: int) -> bytes:
        """Positioned read, clamped to the section. Does not move the cursor."""
        if pos < 0 or length < 0:
            raise ValueError("Position and length must be non-negative")
        length = min(length, self._size - pos)
        if length <= 0:
            return b""
        return self._source.read_at(self._offset + pos, length)

    def read(self, length: Optional[int] = -1) -> bytes:
        if length is None or length < 0:
            length = self._size - self._pos
        data = self.read_at(self._pos, length)
        self._pos += len(data)
        return data

    def read_all(self) -> bytes:
        return self.read_at(0, self._size)

    def sub_reader(self, pos: int, size: int) -> "SectionReader":
        if pos < 0 or size < 0 or pos + size > self._size:
            raise ValueError(
                f"Range [{pos}, {pos + size}) outside section of {self._size} bytes"
            )
        return SectionReader(self._source, self._offset + pos, size)


class SectionWriter:
    """Writes a section through a borrowed file handle."""

    def __init__(self, handle: BinaryIO, tag: bytes, offset: int):
        self._handle = handle
        self._tag = tag
        self._offset = offset
        self._pos = offset
        self._closed = False

    @property
    def tag(self) -> bytes:
        return self._tag

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def closed(self) -> bool:
        return self._closed

    def tell(self) -> int:
        """Bytes written so far, relative to the section start."""
        return self._pos - self._offset

    def write(self, data: bytes) -> int:
        if self._closed:
            raise RuntimeError(f"Section writer for {self._tag!r} is closed")
        self._handle.seek(self._pos)
        written = self._handle.write(data)
        self._pos += written
        return written

    def close(self) -> None:
        if not self._closed:
            self._handle.flush()
            self._closed = True

    def __enter__(self) -> "SectionWriter":
        return self

    def __exit__(self, *args) -> None:
        self.close()
