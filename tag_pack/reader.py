"""
Container reader.

Usage:
    with ContainerReader.open("assets.pack") as reader:
        if reader.has_section("meta"):
            meta = reader.get_reader("meta").read()
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, Iterator, Tuple, Union

from .codec import decode_index
from .errors import CorruptIndex, OpenError, SectionNotFound
from .model import HEADER_SIZE, Entry, Tag, read_u64
from .stream import SectionReader, SourceFile

logger = logging.getLogger(__name__)


class ContainerReader:
    """
    Read-only access to a finished container.

    The index is loaded once and never modified, so get_reader() and the
    SectionReaders it returns can be shared between threads.
    """

    def __init__(self, source: Union[str, Path, BinaryIO]):
        if isinstance(source, (str, Path)):
            self.path = Path(source)
            try:
                handle = open(self.path, "rb")
            except OSError as e:
                raise OpenError(f"Cannot open container {self.path}: {e}") from e
            self._source = SourceFile(handle, owns_handle=True)
        else:
            self.path = None
            self._source = SourceFile(source, owns_handle=False)

        try:
            self._load_index()
        except Exception:
            self._source.close()
            raise

    @classmethod
    def open(cls, source: Union[str, Path, BinaryIO]) -> "ContainerReader":
        return cls(source)

    def _load_index(self) -> None:
        file_size = self._source.size()
        if file_size < HEADER_SIZE:
            raise OpenError(f"File too small ({file_size} bytes) to be a container")

        index_offset = read_u64(self._source.read_at(0, HEADER_SIZE))
        if index_offset == 0:
            raise CorruptIndex("Container was never finished (index offset is 0)")
        if index_offset < HEADER_SIZE or index_offset >= file_size:
            raise CorruptIndex(
                f"Index offset {index_offset} outside file of {file_size} bytes"
            )

        index = decode_index(self._source.handle, index_offset)
        index.check_sorted_by_tag()
        index.check_ranges(index_offset)
        self._index = index

        logger.debug(
            "Opened container %s: %d sections, index at %d",
            self.path or "<stream>",
            len(index),
            index_offset,
        )

    def has_section(self, tag: Tag) -> bool:
        return self._index.find_by_tag(tag) is not None

    def get_entry(self, tag: Tag) -> Entry:
        entry = self._index.find_by_tag(tag)
        if entry is None:
            raise SectionNotFound(tag)
        return replace(entry)

    def get_reader(self, tag: Tag) -> SectionReader:
        entry = self.get_entry(tag)
        return SectionReader(self._source, entry.offset, entry.size)

    def read_section(self, tag: Tag) -> bytes:
        return self.get_reader(tag).read_all()

    @property
    def entries(self) -> Tuple[Entry, ...]:
        """Entries sorted by tag."""
        return tuple(replace(e) for e in self._index)

    @property
    def tags(self) -> Tuple[bytes, ...]:
        return tuple(self._index.tags())

    def close(self) -> None:
        self._source.close()

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, tag: Tag) -> bool:
        return self.has_section(tag)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.tags)

    def __enter__(self) -> "ContainerReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()
