"""Core enums, constants, and record types for the audiobook library.

Enums:
    ImportStatus   -- Import job state (processing, completed, partial, failed).
    MetadataSource -- Which layer a metadata field is read from (agent, file, custom).

Records are plain dataclasses. Storage rows are mapped to them by
library_db; the orchestrators build the report types (ScanResult, ImportJob).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class ImportStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class MetadataSource(StrEnum):
    AGENT = "agent"
    FILE = "file"
    CUSTOM = "custom"


AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp3",
        ".m4a",
        ".m4b",
        ".flac",
        ".wav",
        ".ogg",
        ".aac",
    }
)

MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".m4b": "audio/mp4",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".aac": "audio/aac",
}

DEFAULT_MIME_TYPE = "audio/mpeg"

UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_TITLE = "Unknown Title"

# Fields the resolver computes an effective value for
METADATA_FIELDS: tuple[str, ...] = (
    "title",
    "subtitle",
    "author",
    "narrator",
    "description",
    "cover_url",
    "series_name",
    "series_sequence",
    "release_date",
    "isbn",
    "asin",
    "language",
    "publisher",
    "genres",
)

# Fields exposed in the manual edit form
EDITABLE_FIELDS: tuple[str, ...] = (
    "title",
    "subtitle",
    "author",
    "narrator",
    "description",
)


@dataclass
class LibrarySummary:
    id: str
    name: str
    display_name: str
    type: str = "audiobook"


@dataclass
class LibraryPath:
    """A physical directory scanned for content (shareable across libraries)."""

    id: str
    path: str
    name: str
    enabled: bool = True
    created_at: datetime | None = None
    last_scanned_at: datetime | None = None
    book_count: int = 0
    libraries: list[LibrarySummary] = field(default_factory=list)


@dataclass
class Library:
    id: str
    name: str
    display_name: str
    type: str = "audiobook"
    description: str | None = None
    settings: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    book_count: int = 0
    directories: list[LibraryPath] = field(default_factory=list)


@dataclass
class MediaFile:
    """A single audio track. audiobook_id stays empty until the book is persisted."""

    id: str
    filename: str
    mime_type: str
    duration_sec: float = 0.0
    audiobook_id: str = ""


@dataclass
class Audiobook:
    id: str
    library_path_id: str
    asset_path: str
    library_id: str | None = None
    metadata_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    media_files: list[MediaFile] = field(default_factory=list)
    file_count: int = 0
    total_duration_sec: float = 0.0


@dataclass
class AgentMetadata:
    """Metadata matched from an external provider (Audible, Google Books)."""

    id: str
    title: str
    author: str
    subtitle: str | None = None
    narrator: str | None = None
    description: str | None = None
    cover_url: str | None = None
    series_name: str | None = None
    series_sequence: str | None = None
    release_date: str | None = None
    isbn: str | None = None
    asin: str | None = None
    language: str | None = None
    publisher: str | None = None
    genres: str | None = None
    source: str = "unknown"
    external_id: str | None = None


@dataclass
class EmbeddedMetadata:
    """Tags read from the audio files themselves (1:1 with an audiobook)."""

    audiobook_id: str
    title: str | None = None
    subtitle: str | None = None
    author: str | None = None
    narrator: str | None = None
    description: str | None = None
    series_name: str | None = None
    series_sequence: str | None = None
    release_date: str | None = None
    genres: str | None = None
    extracted_at: datetime | None = None


@dataclass
class FieldOverride:
    """Per-field manual override.

    locked=True with value=None means "freeze the source value at save time";
    the repository stores that snapshot in `snapshot`.
    """

    locked: bool
    value: str | None = None
    snapshot: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"locked": self.locked}
        if self.value is not None:
            payload["value"] = self.value
        return payload


@dataclass
class ImportFolder:
    id: str
    path: str
    name: str
    enabled: bool = True
    created_at: datetime | None = None


@dataclass
class ImportSettings:
    destination_path: str
    template: str = "{author}/{title}"
    id: str = "default"
    updated_at: datetime | None = None


@dataclass
class Discovery:
    """A candidate audiobook found on disk, not yet persisted."""

    asset_path: str
    media_files: list[MediaFile] = field(default_factory=list)


@dataclass
class DirectoryScanResult:
    directory_id: str
    directory_path: str
    books_found: int = 0
    new_books: list[Audiobook] = field(default_factory=list)
    scan_duration: float = 0.0


@dataclass
class ScanResult:
    library_id: str
    library_name: str
    directories: list[DirectoryScanResult] = field(default_factory=list)
    total_books_found: int = 0
    total_new_books: int = 0
    scan_duration: float = 0.0


@dataclass
class ImportJob:
    id: str
    status: ImportStatus
    source_paths: list[str]
    imported_books: list[Audiobook] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class BookMetadata:
    """Best-effort metadata parsed from a staged file or folder name."""

    original_name: str
    title: str = ""
    author: str = ""
    series: str = ""
    series_number: str = ""
    narrator: str = ""
    year: str = ""


@dataclass
class DirectoryEntry:
    name: str
    path: str
    full_path: str
    is_dir: bool = True


@dataclass
class DirectoryListing:
    path: str
    full_path: str
    entries: list[DirectoryEntry] = field(default_factory=list)


@dataclass
class BrowseEntry:
    """A file or folder inside a library or import root."""

    name: str
    path: str
    is_dir: bool
    file_count: int | None = None
    size: int | None = None
    is_audiobook: bool = False
