"""
Domain value objects shared across storage backends and transfers.
"""

from .value_objects import (
    CopyOrMoveInput,
    UploadOptions,
    FileStats,
    UploadResult,
    SubDirectoryGenerator,
    FileNameGenerator
)

__all__ = [
    "CopyOrMoveInput",
    "UploadOptions",
    "FileStats",
    "UploadResult",
    "SubDirectoryGenerator",
    "FileNameGenerator"
]
