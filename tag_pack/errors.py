"""
Errors raised by tag_pack containers.
"""

from typing import Union


class TagPackError(Exception):
    """Base class for container failures."""


class OpenError(TagPackError):
    """Container file could not be opened, created or recognised."""


class CorruptIndex(OpenError):
    """Index bytes are malformed, truncated or inconsistent."""


class SectionNotFound(TagPackError):
    def __init__(self, tag: Union[bytes, str]):
        self.tag = tag
        super().__init__(f"Section not found: {tag!r}")


class DuplicateSection(TagPackError):
    def __init__(self, tag: Union[bytes, str]):
        self.tag = tag
        super().__init__(f"Section already exists: {tag!r}")
