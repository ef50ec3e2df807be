"""
Archive encoding for bulk export and import.
"""

from .codec import ArchiveCodec, ArchiveFile, ZipArchiveCodec

__all__ = [
    "ArchiveCodec",
    "ArchiveFile",
    "ZipArchiveCodec",
]
