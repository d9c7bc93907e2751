"""
Container manager - Logic for container file operations.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import SectionNotFound
from .file_types import detect_type, type_to_ext
from .model import Entry, Tag, to_tag
from .reader import ContainerReader
from .writer import ContainerWriter, OpenMode

logger = logging.getLogger(__name__)

HEX_SUFFIX = ".hex"


def tag_to_filename(tag: bytes) -> str:
    """File name for a tag; tags that are not safe file names are hex encoded."""
    try:
        name = tag.decode("utf-8")
    except UnicodeDecodeError:
        return tag.hex() + HEX_SUFFIX

    unsafe = (
        not name
        or name in (".", "..")
        or "/" in name
        or "\\" in name
        or not name.isprintable()
        or name.endswith(HEX_SUFFIX)
    )
    if unsafe:
        return tag.hex() + HEX_SUFFIX
    return name


def filename_to_tag(name: str) -> bytes:
    if name.endswith(HEX_SUFFIX):
        try:
            return bytes.fromhex(name[: -len(HEX_SUFFIX)])
        except ValueError:
            pass
    return name.encode("utf-8")


class PackManager:
    """Manages container file operations."""

    def __init__(self):
        self.file_path: Optional[Path] = None
        self._checksum: Optional[str] = None

    def create_new(self, path: Path) -> None:
        with ContainerWriter(path, OpenMode.CREATE):
            pass
        self.file_path = path
        self._invalidate_checksum()

    def load(self, path: Path) -> int:
        with ContainerReader(path) as reader:
            count = len(reader)
        self.file_path = path
        self._invalidate_checksum()
        return count

    def _require_file(self) -> Path:
        if self.file_path is None:
            raise RuntimeError("No file loaded")
        return self.file_path

    def entries(self) -> List[Entry]:
        """Entries in write (offset) order."""
        with ContainerReader(self._require_file()) as reader:
            return sorted(reader.entries, key=lambda e: e.offset)

    def has_section(self, tag: Tag) -> bool:
        with ContainerReader(self._require_file()) as reader:
            return reader.has_section(tag)

    def get_section_data(self, tag: Tag) -> bytes:
        with ContainerReader(self._require_file()) as reader:
            return reader.read_section(tag)

    def get_entry_info(self, tag: Tag) -> Tuple[str, int]:
        data = self.get_section_data(tag)
        return detect_type(data), len(data)

    def add_data(self, data: bytes, tag: Tag) -> None:
        with ContainerWriter(self._require_file(), OpenMode.APPEND) as writer:
            writer.append_buffer(data, tag)
        self._invalidate_checksum()

    def add_file(self, path: Path, tag: Optional[Tag] = None) -> bytes:
        key = to_tag(tag) if tag is not None else filename_to_tag(path.name)
        with ContainerWriter(self._require_file(), OpenMode.APPEND) as writer:
            writer.append_file(path, key)
        self._invalidate_checksum()
        return key

    def import_entry(self, tag: Tag, path: Path) -> str:
        return self.import_data(tag, path.read_bytes())

    def import_data(self, tag: Tag, data: bytes) -> str:
        """
        Replace a section's contents. Same-size data is overwritten in place;
        anything else rebuilds the container.
        """
        file_path = self._require_file()
        with ContainerReader(file_path) as reader:
            entry = reader.get_entry(tag)

        if entry.size == len(data):
            with ContainerWriter(file_path, OpenMode.WRITE_EXISTING) as writer:
                with writer.get_existing_writer(tag) as out:
                    out.write(data)
        else:
            self._rebuild(replacements={entry.tag: data})

        self._invalidate_checksum()
        return detect_type(data)

    def remove_section(self, tag: Tag) -> None:
        key = to_tag(tag)
        if not self.has_section(key):
            raise SectionNotFound(tag)
        self._rebuild(skip=key)
        self._invalidate_checksum()

    def _rebuild(
        self,
        replacements: Optional[Dict[bytes, bytes]] = None,
        skip: Optional[bytes] = None,
    ) -> None:
        """Copy every section into a fresh container, then swap it in."""
        file_path = self._require_file()
        replacements = replacements or {}
        tmp_path = file_path.with_name(file_path.name + ".tmp")

        try:
            with ContainerReader(file_path) as reader, ContainerWriter(tmp_path) as writer:
                for entry in sorted(reader.entries, key=lambda e: e.offset):
                    if entry.tag == skip:
                        continue
                    if entry.tag in replacements:
                        writer.append_buffer(replacements[entry.tag], entry.tag)
                    else:
                        writer.append_from_stream(reader.get_reader(entry.tag), entry.tag)
            os.replace(tmp_path, file_path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info("Rebuilt %s", file_path)

    def export_section(self, tag: Tag, path: Path) -> Path:
        """Write a section to path. A directory target gets a name from the tag."""
        key = to_tag(tag)
        data = self.get_section_data(key)

        if path.is_dir():
            name = tag_to_filename(key)
            if not Path(name).suffix:
                name += type_to_ext(detect_type(data))
            path = path / name

        path.write_bytes(data)
        return path

    def export_all(self, directory: Path) -> int:
        directory.mkdir(parents=True, exist_ok=True)
        with ContainerReader(self._require_file()) as reader:
            for entry in reader.entries:
                (directory / tag_to_filename(entry.tag)).write_bytes(
                    reader.read_section(entry.tag)
                )
            return len(reader)

    def import_all(self, directory: Path) -> int:
        """Replace the container with one section per file in directory."""
        file_path = self._require_file()
        files = sorted(f for f in directory.iterdir() if f.is_file())

        if not files:
            return 0

        with ContainerWriter(file_path, OpenMode.CREATE) as writer:
            for f in files:
                writer.append_file(f, filename_to_tag(f.name))

        self._invalidate_checksum()
        return len(files)

    def get_checksum(self) -> str:
        if self.file_path is None:
            return "-"
        if self._checksum is None:
            self._checksum = hashlib.md5(self.file_path.read_bytes()).hexdigest()
        return self._checksum

    def _invalidate_checksum(self) -> None:
        """Call when container contents change."""
        self._checksum = None

    def get_size(self) -> int:
        if self.file_path is None:
            return 0
        return self.file_path.stat().st_size

    def __len__(self) -> int:
        if self.file_path is None:
            return 0
        with ContainerReader(self.file_path) as reader:
            return len(reader)
