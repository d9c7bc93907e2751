"""
Tagged section container model.

Format:
    Header (8 bytes):
        - 8 bytes: Index offset (uint64, little-endian). 0 while unfinished.
    Data:
        - Section bytes, back-to-back, in write order.
    Index (at index offset, all fields varint):
        - Entry count
        - Per entry: tag length, tag bytes, offset, size
"""

from bisect import bisect_left
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from .errors import CorruptIndex

HEADER_SIZE = 8
BYTE_ORDER = "little"
COPY_BUFFER_SIZE = 4096
# Smallest encoded entry: empty tag, one-byte offset, one-byte size
MIN_ENTRY_SIZE = 3

Tag = Union[bytes, str]


def to_tag(tag: Tag) -> bytes:
    if isinstance(tag, str):
        return tag.encode("utf-8")
    if isinstance(tag, (bytes, bytearray, memoryview)):
        return bytes(tag)
    raise TypeError(f"Tag must be bytes or str, not {type(tag).__name__}")


def read_u64(data: Union[bytes, memoryview], offset: int = 0) -> int:
    return int.from_bytes(data[offset : offset + HEADER_SIZE], BYTE_ORDER)


def write_u64(value: int) -> bytes:
    return value.to_bytes(HEADER_SIZE, BYTE_ORDER)


@dataclass
class Entry:
    tag: bytes
    offset: int
    size: int = 0

    @property
    def end(self) -> int:
        return self.offset + self.size


def _offset_key(entry: Entry):
    return entry.offset, entry.size


class ContainerIndex:
    """
    Ordered list of entries.

    Writers keep it sorted by offset so the open section is always last;
    readers keep it sorted by tag for binary search. Sorting is never
    implicit: callers switch order with sort_by_tag() / sort_by_offset().
    """

    def __init__(self, entries: Optional[List[Entry]] = None):
        self._entries: List[Entry] = list(entries) if entries else []

    def push(self, tag: Tag, offset: int) -> Entry:
        entry = Entry(to_tag(tag), offset)
        self._entries.append(entry)
        return entry

    def last(self) -> Optional[Entry]:
        if not self._entries:
            return None
        return self._entries[-1]

    def sort_by_tag(self) -> None:
        self._entries.sort(key=lambda e: e.tag)

    def sort_by_offset(self) -> None:
        # Empty sections share their offset with the section that follows
        self._entries.sort(key=_offset_key)

    def find_by_tag(self, tag: Tag) -> Optional[Entry]:
        """Binary search. Only valid while sorted by tag."""
        key = to_tag(tag)
        i = bisect_left(self._entries, key, key=lambda e: e.tag)
        if i < len(self._entries) and self._entries[i].tag == key:
            return self._entries[i]
        return None

    def find_linear(self, tag: Tag) -> Optional[Entry]:
        key = to_tag(tag)
        for entry in self._entries:
            if entry.tag == key:
                return entry
        return None

    def check_sorted_by_tag(self) -> None:
        for prev, cur in zip(self._entries, self._entries[1:]):
            if prev.tag == cur.tag:
                raise CorruptIndex(f"Duplicate tag in index: {cur.tag!r}")
            if prev.tag > cur.tag:
                raise CorruptIndex(f"Index not sorted by tag at {cur.tag!r}")

    def check_ranges(self, limit: int) -> None:
        """Every section must lie in [HEADER_SIZE, limit) without overlap."""
        by_offset = sorted(self._entries, key=_offset_key)
        prev_end = HEADER_SIZE
        for entry in by_offset:
            if entry.offset < prev_end:
                raise CorruptIndex(
                    f"Section {entry.tag!r} at {entry.offset} overlaps "
                    f"header or previous section (ends at {prev_end})"
                )
            if entry.end > limit:
                raise CorruptIndex(
                    f"Section {entry.tag!r} ends at {entry.end}, past {limit}"
                )
            prev_end = entry.end

    def tags(self) -> List[bytes]:
        return [e.tag for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __getitem__(self, key: int) -> Entry:
        return self._entries[key]
