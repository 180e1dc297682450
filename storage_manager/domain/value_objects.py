"""
Value objects shared by the storage backends.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union


SubDirectoryGenerator = Callable[[], str]
FileNameGenerator = Callable[[str], str]


@dataclass(frozen=True)
class CopyOrMoveInput:
    """Source and destination keys for copy and move operations."""
    from_key: str
    to_key: str


@dataclass(frozen=True)
class UploadOptions:
    """Options controlling how an uploaded file is named and written."""
    generate_sub_directories: Union[bool, SubDirectoryGenerator] = True
    generate_unique_file_name: Union[bool, FileNameGenerator] = True
    delete_file_on_error: Optional[bool] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class FileStats:
    """Metadata of a file held by a storage backend."""
    bucket: str
    key: str
    file_name: str
    size: int
    mime_type: str
    file_extension: str
    modified: Optional[datetime] = None
    created: Optional[datetime] = None
    absolute_path: Optional[str] = None
    etag: Optional[str] = None
    is_file: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_local(self) -> bool:
        """True for files that live on the local filesystem."""
        return self.absolute_path is not None


@dataclass(frozen=True)
class UploadResult:
    """Location of an uploaded file."""
    bucket: str
    key: str
    absolute_path: Optional[str] = None
    etag: Optional[str] = None
    version_id: Optional[str] = None
