"""SQLite-backed library repository.

Single WAL-mode database storing libraries, library paths (directories) and
their many-to-many join, audiobooks with their media files, the three
metadata layers (agent match, embedded tags, manual overrides), import
folders, and the import settings row. Thread-safe via per-thread
connections and SQLite's built-in locking.

The orchestrators only rely on the read/write shapes below; nothing here
enforces the "audiobook directory belongs to the audiobook's library"
invariant -- callers do.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
import uuid
from dataclasses import fields as dataclass_fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from .errors import DuplicateAssetError, NotFoundError
from .metadata_resolver import layer_value
from .models import (
    AgentMetadata,
    Audiobook,
    EmbeddedMetadata,
    FieldOverride,
    ImportFolder,
    ImportSettings,
    Library,
    LibraryPath,
    LibrarySummary,
    MediaFile,
)

log = logger.bind(stage="db")

_TS_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_SCHEMA = """\
PRAGMA journal_mode=WAL;
PRAGMA busy_timeout=5000;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS libraries (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL UNIQUE,
    display_name  TEXT NOT NULL,
    type          TEXT NOT NULL DEFAULT 'audiobook',
    description   TEXT,
    settings      TEXT,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS library_paths (
    id               TEXT PRIMARY KEY,
    path             TEXT NOT NULL UNIQUE,
    name             TEXT NOT NULL,
    enabled          INTEGER NOT NULL DEFAULT 1,
    created_at       TEXT NOT NULL,
    last_scanned_at  TEXT
);

CREATE TABLE IF NOT EXISTS library_directories (
    library_id    TEXT NOT NULL,
    directory_id  TEXT NOT NULL,
    created_at    TEXT NOT NULL,
    PRIMARY KEY (library_id, directory_id),
    FOREIGN KEY (library_id) REFERENCES libraries(id) ON DELETE CASCADE,
    FOREIGN KEY (directory_id) REFERENCES library_paths(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS audiobook_metadata_agent (
    id               TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    subtitle         TEXT,
    author           TEXT NOT NULL,
    narrator         TEXT,
    description      TEXT,
    cover_url        TEXT,
    series_name      TEXT,
    series_sequence  TEXT,
    release_date     TEXT,
    isbn             TEXT,
    asin             TEXT,
    language         TEXT,
    publisher        TEXT,
    genres           TEXT,
    source           TEXT NOT NULL DEFAULT 'unknown',
    external_id      TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS audiobooks (
    id               TEXT PRIMARY KEY,
    library_id       TEXT,
    library_path_id  TEXT NOT NULL,
    metadata_id      TEXT,
    asset_path       TEXT NOT NULL UNIQUE,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    FOREIGN KEY (library_id) REFERENCES libraries(id) ON DELETE CASCADE,
    FOREIGN KEY (library_path_id) REFERENCES library_paths(id) ON DELETE CASCADE,
    FOREIGN KEY (metadata_id) REFERENCES audiobook_metadata_agent(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS media_files (
    id            TEXT PRIMARY KEY,
    audiobook_id  TEXT NOT NULL,
    filename      TEXT NOT NULL,
    duration_sec  REAL NOT NULL DEFAULT 0,
    mime_type     TEXT NOT NULL,
    FOREIGN KEY (audiobook_id) REFERENCES audiobooks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS audiobook_metadata_embedded (
    audiobook_id     TEXT PRIMARY KEY,
    title            TEXT,
    subtitle         TEXT,
    author           TEXT,
    narrator         TEXT,
    description      TEXT,
    series_name      TEXT,
    series_sequence  TEXT,
    release_date     TEXT,
    genres           TEXT,
    extracted_at     TEXT NOT NULL,
    FOREIGN KEY (audiobook_id) REFERENCES audiobooks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS audiobook_metadata_overrides (
    audiobook_id  TEXT PRIMARY KEY,
    overrides     TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    updated_by    TEXT,
    FOREIGN KEY (audiobook_id) REFERENCES audiobooks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS import_folders (
    id          TEXT PRIMARY KEY,
    path        TEXT NOT NULL UNIQUE,
    name        TEXT NOT NULL,
    enabled     INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS import_settings (
    id                TEXT PRIMARY KEY DEFAULT 'default',
    destination_path  TEXT NOT NULL,
    template          TEXT NOT NULL DEFAULT '{author}/{title}',
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_library_paths_enabled ON library_paths(enabled);
CREATE INDEX IF NOT EXISTS idx_library_directories_directory ON library_directories(directory_id);
CREATE INDEX IF NOT EXISTS idx_audiobooks_library ON audiobooks(library_id);
CREATE INDEX IF NOT EXISTS idx_media_files_audiobook ON media_files(audiobook_id);
"""

_AGENT_COLUMNS = [f.name for f in dataclass_fields(AgentMetadata)]
_EMBEDDED_COLUMNS = [
    f.name for f in dataclass_fields(EmbeddedMetadata) if f.name != "extracted_at"
]


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime(_TS_FORMAT)


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=timezone.utc)


def generate_library_name(display_name: str) -> str:
    """Slugify a display name ("My Books!" -> "my-books")."""
    slug = re.sub(r"[^a-z0-9]+", "-", display_name.strip().lower()).strip("-")
    return slug or str(uuid.uuid4())


class LibraryDB:
    """SQLite-backed library repository.

    Thread-safe: each thread gets its own connection via threading.local().
    The database uses WAL mode for concurrent readers + single writer.
    """

    def __init__(
        self,
        db_path: Path,
        default_destination: Path | None = None,
        default_template: str = "{author}/{title}",
    ) -> None:
        self.db_path = db_path
        self._local = threading.local()
        self._init_schema(default_destination, default_template)

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create a per-thread SQLite connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=10.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
            conn.execute("PRAGMA foreign_keys=ON")
            self._local.conn = conn
        return conn

    def _init_schema(self, default_destination: Path | None, default_template: str) -> None:
        """Create tables if they don't exist and seed the import settings row."""
        conn = self._get_conn()
        conn.executescript(_SCHEMA)
        destination = default_destination or self.db_path.parent / "library"
        conn.execute(
            """INSERT OR IGNORE INTO import_settings
               (id, destination_path, template, updated_at)
               VALUES ('default', ?, ?, ?)""",
            (str(destination), default_template, _utcnow()),
        )
        conn.commit()

    def close(self) -> None:
        """Close the current thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # -- Libraries --

    def create_library(
        self,
        display_name: str,
        name: str | None = None,
        type: str = "audiobook",
        description: str | None = None,
        settings: dict[str, Any] | None = None,
        library_id: str | None = None,
    ) -> Library:
        """Register a new library and return it."""
        if not display_name.strip():
            raise ValueError("display_name is required")
        library_id = library_id or str(uuid.uuid4())
        now = _utcnow()
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO libraries
               (id, name, display_name, type, description, settings,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                library_id,
                name or generate_library_name(display_name),
                display_name,
                type or "audiobook",
                description,
                json.dumps(settings) if settings is not None else None,
                now,
                now,
            ),
        )
        conn.commit()
        log.info(f"Created library {library_id} '{display_name}'")
        return self.get_library_by_id(library_id)

    def list_libraries(self) -> list[Library]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM libraries ORDER BY display_name"
        ).fetchall()
        return [self._library_from_row(r) for r in rows]

    def get_library_by_id(self, library_id: str) -> Library:
        """Fetch a library with its directories. Raises NotFoundError."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM libraries WHERE id = ?", (library_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("library", library_id)
        return self._library_from_row(row)

    def _library_from_row(self, row: sqlite3.Row) -> Library:
        conn = self._get_conn()
        book_count = conn.execute(
            "SELECT COUNT(*) FROM audiobooks WHERE library_id = ?", (row["id"],)
        ).fetchone()[0]
        dir_rows = conn.execute(
            """SELECT p.* FROM library_paths p
               JOIN library_directories ld ON ld.directory_id = p.id
               WHERE ld.library_id = ?
               ORDER BY p.path""",
            (row["id"],),
        ).fetchall()
        return Library(
            id=row["id"],
            name=row["name"],
            display_name=row["display_name"],
            type=row["type"],
            description=row["description"],
            settings=json.loads(row["settings"]) if row["settings"] else None,
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
            book_count=book_count,
            directories=[self._library_path_from_row(d) for d in dir_rows],
        )

    def set_library_directories(self, library_id: str, directory_ids: list[str]) -> Library:
        """Replace the set of directories linked to a library."""
        self.get_library_by_id(library_id)
        conn = self._get_conn()
        now = _utcnow()
        with conn:
            conn.execute(
                "DELETE FROM library_directories WHERE library_id = ?", (library_id,)
            )
            for directory_id in directory_ids:
                conn.execute(
                    """INSERT INTO library_directories
                       (library_id, directory_id, created_at) VALUES (?, ?, ?)""",
                    (library_id, directory_id, now),
                )
        log.info(f"Library {library_id} directories set to {directory_ids}")
        return self.get_library_by_id(library_id)

    def delete_library(self, library_id: str) -> None:
        """Delete a library (cascades to its audiobooks and directory links)."""
        conn = self._get_conn()
        conn.execute("DELETE FROM libraries WHERE id = ?", (library_id,))
        conn.commit()

    # -- Library paths --

    def create_library_path(
        self,
        path: str | Path,
        name: str | None = None,
        enabled: bool = True,
        path_id: str | None = None,
    ) -> LibraryPath:
        path_id = path_id or str(uuid.uuid4())
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO library_paths (id, path, name, enabled, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (path_id, str(path), name or Path(path).name, int(enabled), _utcnow()),
        )
        conn.commit()
        log.info(f"Created library path {path_id} -> {path}")
        return self.get_library_path_by_id(path_id)

    def get_library_paths(self) -> list[LibraryPath]:
        """All configured library paths regardless of status."""
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM library_paths ORDER BY path").fetchall()
        return [self._library_path_from_row(r, with_libraries=True) for r in rows]

    def get_library_path_by_id(self, path_id: str) -> LibraryPath:
        """Fetch a library path with the libraries it backs. Raises NotFoundError."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM library_paths WHERE id = ?", (path_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("library path", path_id)
        return self._library_path_from_row(row, with_libraries=True)

    def _library_path_from_row(
        self, row: sqlite3.Row, with_libraries: bool = False
    ) -> LibraryPath:
        conn = self._get_conn()
        book_count = conn.execute(
            "SELECT COUNT(*) FROM audiobooks WHERE library_path_id = ?", (row["id"],)
        ).fetchone()[0]
        libraries: list[LibrarySummary] = []
        if with_libraries:
            lib_rows = conn.execute(
                """SELECT l.id, l.name, l.display_name, l.type FROM libraries l
                   JOIN library_directories ld ON ld.library_id = l.id
                   WHERE ld.directory_id = ?
                   ORDER BY l.display_name""",
                (row["id"],),
            ).fetchall()
            libraries = [LibrarySummary(**dict(r)) for r in lib_rows]
        return LibraryPath(
            id=row["id"],
            path=row["path"],
            name=row["name"],
            enabled=bool(row["enabled"]),
            created_at=_parse_ts(row["created_at"]),
            last_scanned_at=_parse_ts(row["last_scanned_at"]),
            book_count=book_count,
            libraries=libraries,
        )

    def set_library_path_enabled(self, path_id: str, enabled: bool) -> None:
        conn = self._get_conn()
        conn.execute(
            "UPDATE library_paths SET enabled = ? WHERE id = ?", (int(enabled), path_id)
        )
        conn.commit()

    def update_last_scanned(self, path_id: str) -> None:
        conn = self._get_conn()
        conn.execute(
            "UPDATE library_paths SET last_scanned_at = ? WHERE id = ?",
            (_utcnow(), path_id),
        )
        conn.commit()

    # -- Audiobooks --

    def get_audiobook_by_path(self, asset_path: str) -> Audiobook | None:
        """Exact asset path lookup. Returns None when nothing is registered there."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM audiobooks WHERE asset_path = ?", (asset_path,)
        ).fetchone()
        if row is None:
            return None
        return self._audiobook_from_row(row, with_media=False)

    def create_audiobook(
        self,
        audiobook: Audiobook,
        media_files: list[MediaFile],
        metadata_id: str | None = None,
    ) -> None:
        """Insert an audiobook and its media files in one transaction.

        Media files without an audiobook_id are attached to this audiobook.
        Raises DuplicateAssetError if the asset path is already registered.
        """
        now = _utcnow()
        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    """INSERT INTO audiobooks
                       (id, library_id, library_path_id, metadata_id, asset_path,
                        created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        audiobook.id,
                        audiobook.library_id,
                        audiobook.library_path_id,
                        metadata_id or audiobook.metadata_id,
                        audiobook.asset_path,
                        now,
                        now,
                    ),
                )
                for mf in media_files:
                    if not mf.audiobook_id:
                        mf.audiobook_id = audiobook.id
                    conn.execute(
                        """INSERT INTO media_files
                           (id, audiobook_id, filename, duration_sec, mime_type)
                           VALUES (?, ?, ?, ?, ?)""",
                        (mf.id, mf.audiobook_id, mf.filename, mf.duration_sec, mf.mime_type),
                    )
        except sqlite3.IntegrityError as e:
            if "asset_path" in str(e):
                raise DuplicateAssetError(audiobook.asset_path) from e
            raise
        log.info(
            f"Created audiobook {audiobook.id} library_id={audiobook.library_id} "
            f"library_path_id={audiobook.library_path_id} path={audiobook.asset_path}"
        )

    def get_audiobook(self, audiobook_id: str) -> Audiobook:
        """Fetch an audiobook with media files and computed stats. Raises NotFoundError."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM audiobooks WHERE id = ?", (audiobook_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("audiobook", audiobook_id)
        return self._audiobook_from_row(row)

    def list_audiobooks(self, library_id: str | None = None) -> list[Audiobook]:
        conn = self._get_conn()
        if library_id:
            rows = conn.execute(
                "SELECT * FROM audiobooks WHERE library_id = ? ORDER BY asset_path",
                (library_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM audiobooks ORDER BY asset_path"
            ).fetchall()
        return [self._audiobook_from_row(r) for r in rows]

    def delete_audiobook(self, audiobook_id: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM audiobooks WHERE id = ?", (audiobook_id,))
        conn.commit()

    def _audiobook_from_row(self, row: sqlite3.Row, with_media: bool = True) -> Audiobook:
        media: list[MediaFile] = []
        if with_media:
            conn = self._get_conn()
            media_rows = conn.execute(
                "SELECT * FROM media_files WHERE audiobook_id = ? ORDER BY filename",
                (row["id"],),
            ).fetchall()
            media = [MediaFile(**dict(m)) for m in media_rows]
        return Audiobook(
            id=row["id"],
            library_id=row["library_id"],
            library_path_id=row["library_path_id"],
            metadata_id=row["metadata_id"],
            asset_path=row["asset_path"],
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
            media_files=media,
            file_count=len(media),
            total_duration_sec=sum(m.duration_sec for m in media),
        )

    # -- Agent metadata --

    def upsert_agent_metadata(self, meta: AgentMetadata) -> AgentMetadata:
        """Insert or update an agent metadata record (shared across audiobooks).

        Updates in place so audiobooks linked to the record stay linked.
        """
        now = _utcnow()
        conn = self._get_conn()
        columns = _AGENT_COLUMNS + ["created_at", "updated_at"]
        values = [getattr(meta, c) for c in _AGENT_COLUMNS] + [now, now]
        updates = ", ".join(
            f"{c} = excluded.{c}" for c in _AGENT_COLUMNS + ["updated_at"] if c != "id"
        )
        conn.execute(
            f"INSERT INTO audiobook_metadata_agent ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            values,
        )
        conn.commit()
        log.debug(f"Upserted agent metadata {meta.id} source={meta.source}")
        return meta

    def get_agent_metadata(self, metadata_id: str) -> AgentMetadata | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM audiobook_metadata_agent WHERE id = ?", (metadata_id,)
        ).fetchone()
        if row is None:
            return None
        return AgentMetadata(**{c: row[c] for c in _AGENT_COLUMNS})

    def link_audiobook_metadata(self, audiobook_id: str, metadata_id: str | None) -> None:
        """Point an audiobook at an agent metadata record (None unlinks)."""
        conn = self._get_conn()
        cur = conn.execute(
            "UPDATE audiobooks SET metadata_id = ?, updated_at = ? WHERE id = ?",
            (metadata_id, _utcnow(), audiobook_id),
        )
        conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError("audiobook", audiobook_id)

    # -- Embedded metadata --

    def set_embedded_metadata(self, meta: EmbeddedMetadata) -> None:
        columns = _EMBEDDED_COLUMNS + ["extracted_at"]
        values = [getattr(meta, c) for c in _EMBEDDED_COLUMNS] + [_utcnow()]
        conn = self._get_conn()
        conn.execute(
            f"INSERT OR REPLACE INTO audiobook_metadata_embedded ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            values,
        )
        conn.commit()

    def get_embedded_metadata(self, audiobook_id: str) -> EmbeddedMetadata | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM audiobook_metadata_embedded WHERE audiobook_id = ?",
            (audiobook_id,),
        ).fetchone()
        if row is None:
            return None
        data = {c: row[c] for c in _EMBEDDED_COLUMNS}
        return EmbeddedMetadata(**data, extracted_at=_parse_ts(row["extracted_at"]))

    # -- Metadata overrides --

    def get_metadata_overrides(self, audiobook_id: str) -> dict[str, FieldOverride]:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT overrides FROM audiobook_metadata_overrides WHERE audiobook_id = ?",
            (audiobook_id,),
        ).fetchone()
        if row is None:
            return {}
        raw = json.loads(row["overrides"])
        return {
            name: FieldOverride(
                locked=bool(data.get("locked")),
                value=data.get("value"),
                snapshot=data.get("snapshot"),
            )
            for name, data in raw.items()
        }

    def save_metadata_overrides(
        self,
        audiobook_id: str,
        overrides: dict[str, FieldOverride],
        updated_by: str | None = None,
    ) -> dict[str, FieldOverride]:
        """Persist overrides for an audiobook, snapshotting value-less locks.

        A locked override without a value freezes the field's current source
        value (agent, then embedded) unless the caller supplies a snapshot.
    An empty source freezes as an empty snapshot, so a later agent match
    cannot fill a field that was locked while blank.
        A field that was already frozen keeps its earlier snapshot, so
        re-saving does not pick up a refreshed source value.
        """
        audiobook = self.get_audiobook(audiobook_id)
        agent = (
            self.get_agent_metadata(audiobook.metadata_id)
            if audiobook.metadata_id
            else None
        )
        embedded = self.get_embedded_metadata(audiobook_id)
        previous = self.get_metadata_overrides(audiobook_id)

        stored: dict[str, FieldOverride] = {}
        for name, override in overrides.items():
            snapshot = None
            if override.locked and override.value is None:
                prior = previous.get(name)
                if override.snapshot is not None:
                    snapshot = override.snapshot
                elif prior is not None and prior.value is None and prior.snapshot is not None:
                    snapshot = prior.snapshot
                else:
                    snapshot = layer_value(agent, embedded, name) or ""
            stored[name] = FieldOverride(
                locked=override.locked, value=override.value, snapshot=snapshot
            )

        payload = {
            name: {
                k: v
                for k, v in {
                    "locked": o.locked,
                    "value": o.value,
                    "snapshot": o.snapshot,
                }.items()
                if v is not None
            }
            for name, o in stored.items()
        }
        conn = self._get_conn()
        conn.execute(
            """INSERT OR REPLACE INTO audiobook_metadata_overrides
               (audiobook_id, overrides, updated_at, updated_by)
               VALUES (?, ?, ?, ?)""",
            (audiobook_id, json.dumps(payload, sort_keys=True), _utcnow(), updated_by),
        )
        conn.commit()
        log.info(f"Saved {len(stored)} metadata overrides for {audiobook_id}")
        return stored

    def delete_metadata_overrides(self, audiobook_id: str) -> None:
        conn = self._get_conn()
        conn.execute(
            "DELETE FROM audiobook_metadata_overrides WHERE audiobook_id = ?",
            (audiobook_id,),
        )
        conn.commit()
        log.info(f"Cleared metadata overrides for {audiobook_id}")

    # -- Import folders --

    def create_import_folder(
        self,
        path: str | Path,
        name: str | None = None,
        enabled: bool = True,
        folder_id: str | None = None,
    ) -> ImportFolder:
        folder_id = folder_id or str(uuid.uuid4())
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO import_folders (id, path, name, enabled, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (folder_id, str(path), name or Path(path).name, int(enabled), _utcnow()),
        )
        conn.commit()
        log.info(f"Created import folder {folder_id} -> {path}")
        return self.get_import_folder_by_id(folder_id)

    def get_import_folders(self) -> list[ImportFolder]:
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM import_folders ORDER BY path").fetchall()
        return [self._import_folder_from_row(r) for r in rows]

    def get_enabled_import_folders(self) -> list[ImportFolder]:
        return [f for f in self.get_import_folders() if f.enabled]

    def get_import_folder_by_id(self, folder_id: str) -> ImportFolder:
        """Raises NotFoundError for an unknown folder id."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM import_folders WHERE id = ?", (folder_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("import folder", folder_id)
        return self._import_folder_from_row(row)

    def set_import_folder_enabled(self, folder_id: str, enabled: bool) -> None:
        conn = self._get_conn()
        conn.execute(
            "UPDATE import_folders SET enabled = ? WHERE id = ?", (int(enabled), folder_id)
        )
        conn.commit()

    @staticmethod
    def _import_folder_from_row(row: sqlite3.Row) -> ImportFolder:
        return ImportFolder(
            id=row["id"],
            path=row["path"],
            name=row["name"],
            enabled=bool(row["enabled"]),
            created_at=_parse_ts(row["created_at"]),
        )

    # -- Import settings --

    def get_import_settings(self) -> ImportSettings:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM import_settings WHERE id = 'default'"
        ).fetchone()
        return ImportSettings(
            id=row["id"],
            destination_path=row["destination_path"],
            template=row["template"],
            updated_at=_parse_ts(row["updated_at"]),
        )

    def update_import_settings(
        self,
        destination_path: str | Path | None = None,
        template: str | None = None,
    ) -> ImportSettings:
        current = self.get_import_settings()
        conn = self._get_conn()
        conn.execute(
            """UPDATE import_settings
               SET destination_path = ?, template = ?, updated_at = ?
               WHERE id = 'default'""",
            (
                str(destination_path) if destination_path else current.destination_path,
                template or current.template,
                _utcnow(),
            ),
        )
        conn.commit()
        return self.get_import_settings()
