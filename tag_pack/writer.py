"""
Container writer.

Sections are written back-to-back after the 8-byte header. A section's size
is not known while it is being written; it is patched from the file length
when the next section starts or when the container is finished.

Usage:
    with ContainerWriter("assets.pack") as writer:
        writer.append_buffer(b"...", "meta")
        with writer.get_writer("blob") as out:
            out.write(chunk)
    # leaving the block finishes the container

    with ContainerWriter("assets.pack", OpenMode.APPEND) as writer:
        writer.append_file("extra.bin", "extra")
"""

import io
import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Set, Tuple, Union

from .codec import encode_index
from .errors import DuplicateSection, OpenError, SectionNotFound
from .model import (
    COPY_BUFFER_SIZE,
    HEADER_SIZE,
    ContainerIndex,
    Entry,
    Tag,
    to_tag,
    write_u64,
)
from .reader import ContainerReader
from .stream import SectionWriter

logger = logging.getLogger(__name__)


class OpenMode(Enum):
    CREATE = "create"
    WRITE_EXISTING = "write_existing"
    APPEND = "append"


class ContainerWriter:
    def __init__(self, path: Union[str, Path], mode: OpenMode = OpenMode.CREATE):
        self.path = Path(path)
        self.mode = mode
        self._handle: Optional[BinaryIO] = None
        self._index = ContainerIndex()
        self._tags: Set[bytes] = set()
        self._pending_size_fix = False
        self._finished = False
        self._active: Optional[SectionWriter] = None
        self._writers: List[SectionWriter] = []

        try:
            if mode is OpenMode.CREATE:
                self._create()
            elif mode in (OpenMode.WRITE_EXISTING, OpenMode.APPEND):
                self._load_existing()
                if not self._index:
                    self._create()
                elif mode is OpenMode.APPEND:
                    # Appending starts right after the last finished section
                    self._pending_size_fix = True
            else:
                raise ValueError(f"Unknown open mode: {mode!r}")
        except Exception:
            if self._handle is not None:
                self._handle.close()
                self._handle = None
            raise

        logger.debug(
            "Opened %s for writing (%s, %d existing sections)",
            self.path,
            mode.value,
            len(self._index),
        )

    def _create(self) -> None:
        if self._handle is None:
            try:
                self._handle = open(self.path, "w+b")
            except OSError as e:
                raise OpenError(f"Cannot create container {self.path}: {e}") from e
        else:
            self._handle.truncate(0)
        self._handle.seek(0)
        self._handle.write(write_u64(0))
        self._pending_size_fix = False

    def _load_existing(self) -> None:
        try:
            self._handle = open(self.path, "r+b")
        except OSError as e:
            raise OpenError(f"Cannot open container {self.path}: {e}") from e

        reader = ContainerReader(self._handle)
        self._index = ContainerIndex(list(reader.entries))
        self._index.sort_by_offset()
        self._tags = set(self._index.tags())

        # The old index is rewritten by finish(); drop it and mark the file
        # unfinished until then.
        end = self._index.last().end if self._index else HEADER_SIZE
        self._handle.truncate(end)
        self._handle.seek(0)
        self._handle.write(write_u64(0))

    def _check_open(self) -> None:
        if self._finished:
            raise RuntimeError(f"Container {self.path} is already finished")

    def _close_active(self) -> None:
        if self._active is not None:
            self._active.close()
            self._active = None
        self._writers = [w for w in self._writers if not w.closed]

    def save_current_size(self) -> int:
        """Patch the last section's size from the file length and return it."""
        self._check_open()
        self._handle.flush()
        current = self._handle.seek(0, io.SEEK_END)
        last = self._index.last()
        if last is not None:
            last.size = current - last.offset
        return current

    def get_writer(self, tag: Tag) -> SectionWriter:
        """Start a new section. The previous section writer is closed."""
        self._check_open()
        key = to_tag(tag)
        if key in self._tags:
            raise DuplicateSection(tag)

        self._close_active()
        if self._pending_size_fix:
            self._pending_size_fix = False
            offset = self._index.last().end
        else:
            offset = self.save_current_size()

        self._index.push(key, offset)
        self._tags.add(key)

        writer = SectionWriter(self._handle, key, offset)
        self._active = writer
        self._writers.append(writer)
        logger.debug("Section %r starts at %d", key, offset)
        return writer

    def get_existing_writer(self, tag: Tag) -> SectionWriter:
        """
        Writer positioned at the start of an existing section, for in-place
        overwrite. Writing past the section's original size is not checked.
        """
        self._check_open()
        entry = self._index.find_linear(tag)
        if entry is None:
            raise SectionNotFound(tag)

        writer = SectionWriter(self._handle, entry.tag, entry.offset)
        self._writers.append(writer)
        return writer

    def append_from_stream(self, source: BinaryIO, tag: Tag) -> None:
        """Copy the whole of a seekable stream into a new section."""
        self._check_open()
        writer = self.get_writer(tag)

        source.seek(0)
        remaining = source.seek(0, io.SEEK_END)
        source.seek(0)

        while remaining > 0:
            chunk = source.read(min(COPY_BUFFER_SIZE, remaining))
            if not chunk:
                raise OSError(f"Source for {tag!r} ended {remaining} bytes early")
            writer.write(chunk)
            remaining -= len(chunk)

        writer.close()

    def append_file(self, path: Union[str, Path], tag: Tag) -> None:
        with open(path, "rb") as f:
            self.append_from_stream(f, tag)

    def append_buffer(self, data: bytes, tag: Tag) -> None:
        """Add a section holding data. Empty data still registers the tag."""
        self._check_open()
        writer = self.get_writer(tag)
        if data:
            writer.write(data)
        writer.close()

    def get_entry(self, tag: Tag) -> Entry:
        entry = self._index.find_linear(tag)
        if entry is None:
            raise SectionNotFound(tag)
        return replace(entry)

    @property
    def entries(self) -> Tuple[Entry, ...]:
        """Entries in the index's current order."""
        return tuple(replace(e) for e in self._index)

    @property
    def finished(self) -> bool:
        return self._finished

    def finish(self) -> None:
        self._check_open()
        for writer in self._writers:
            writer.close()
        self._active = None
        self._writers.clear()

        index_offset = self.save_current_size()
        self._handle.seek(0)
        self._handle.write(write_u64(index_offset))

        self._index.sort_by_tag()
        self._handle.seek(0, io.SEEK_END)
        self._handle.write(encode_index(self._index))

        self._finished = True
        self._handle.close()
        self._handle = None
        logger.debug(
            "Finished %s: %d sections, index at %d",
            self.path,
            len(self._index),
            index_offset,
        )

    def close(self) -> None:
        """Finish the container if needed and release the file."""
        if self._handle is None:
            return
        try:
            if not self._finished:
                self.finish()
        finally:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> "ContainerWriter":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self.close()
