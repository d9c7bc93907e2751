"""
tag_pack - Tagged section container format utilities.
"""

from .codec import encode_index, decode_index
from .errors import (
    TagPackError,
    OpenError,
    CorruptIndex,
    SectionNotFound,
    DuplicateSection,
)
from .file_types import detect_type, type_to_ext, format_size
from .manager import PackManager
from .model import Entry, ContainerIndex
from .reader import ContainerReader
from .stream import SectionReader, SectionWriter
from .writer import ContainerWriter, OpenMode

__all__ = [
    "ContainerReader",
    "ContainerWriter",
    "OpenMode",
    "SectionReader",
    "SectionWriter",
    "Entry",
    "ContainerIndex",
    "encode_index",
    "decode_index",
    "PackManager",
    "TagPackError",
    "OpenError",
    "CorruptIndex",
    "SectionNotFound",
    "DuplicateSection",
    "detect_type",
    "type_to_ext",
    "format_size",
]
