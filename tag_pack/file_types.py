"""
File type detection utilities for container sections.
"""

import io
import json

from .errors import OpenError
from .reader import ContainerReader

MAGIC_TYPES = [
    (b"\x89PNG\r\n\x1a\n", "PNG"),
    (b"\xff\xd8\xff", "JPEG"),
    (b"GIF87a", "GIF"),
    (b"GIF89a", "GIF"),
    (b"PK\x03\x04", "ZIP"),
    (b"\x1f\x8b", "GZIP"),
    (b"%PDF", "PDF"),
    (b"\x7fELF", "ELF"),
]


def detect_type(data: bytes) -> str:
    if len(data) == 0:
        return "Empty"

    for magic, name in MAGIC_TYPES:
        if data.startswith(magic):
            return name

    if _is_container(data):
        return "TAGPACK"

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return "Unknown"

    if text.lstrip()[:1] in ("{", "["):
        try:
            json.loads(text)
            return "JSON"
        except ValueError:
            pass

    if all(c.isprintable() or c in "\r\n\t" for c in text):
        return "Text"

    return "Unknown"


def _is_container(data: bytes) -> bool:
    # Header plus a one-byte index at minimum
    if len(data) < 9:
        return False
    try:
        ContainerReader(io.BytesIO(data)).close()
    except OpenError:
        return False
    return True


def type_to_ext(file_type: str) -> str:
    ext_map = {
        "PNG": ".png",
        "JPEG": ".jpg",
        "GIF": ".gif",
        "ZIP": ".zip",
        "GZIP": ".gz",
        "PDF": ".pdf",
        "ELF": ".elf",
        "TAGPACK": ".pack",
        "JSON": ".json",
        "Text": ".txt",
        "Empty": ".bin",
        "Unknown": ".bin",
    }
    return ext_map.get(file_type, ".bin")


def format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.2f} MB"
