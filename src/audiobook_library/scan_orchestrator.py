"""Populate libraries from their directories.

A scan walks every enabled directory linked to a library, discovers
candidate audiobooks, and registers the ones not seen before. Scans are
strictly additive: existing audiobooks are never changed or removed.
A directory that fails is logged and left out of the report; the other
directories still get scanned.
"""

from __future__ import annotations

import time
import uuid

from loguru import logger

from .config import LibraryConfig
from .dedup import already_imported
from .errors import LibraryError
from .library_db import LibraryDB
from .models import Audiobook, DirectoryScanResult, LibraryPath, ScanResult
from .scanner import discover_audiobooks

log = logger.bind(stage="scan")


class LibraryScanner:
    """Scans libraries into the repository.

    Attributes:
        db: LibraryDB the discovered audiobooks are written to
        config: Library configuration (duration probing)
    """

    def __init__(self, db: LibraryDB, config: LibraryConfig | None = None) -> None:
        self.db = db
        self.config = config or LibraryConfig()

    def scan_library(self, library_id: str) -> ScanResult:
        """Scan every enabled directory of one library.

        Raises NotFoundError for an unknown library id.
        """
        library = self.db.get_library_by_id(library_id)
        start = time.monotonic()
        result = ScanResult(library_id=library.id, library_name=library.display_name)
        log.info(
            f"Scanning library '{library.display_name}' "
            f"({len(library.directories)} directories)"
        )

        for directory in library.directories:
            if not directory.enabled:
                log.debug(f"Skipping disabled directory {directory.path}")
                continue
            try:
                dir_result = self._scan_directory(library.id, directory)
            except (OSError, LibraryError) as e:
                log.error(
                    f"Failed to scan directory {directory.path} "
                    f"for library {library.display_name}: {e}"
                )
                continue

            result.directories.append(dir_result)
            result.total_books_found += dir_result.books_found
            result.total_new_books += len(dir_result.new_books)

        result.scan_duration = time.monotonic() - start
        log.info(
            f"Scan of '{library.display_name}' done: "
            f"{result.total_books_found} found, {result.total_new_books} new "
            f"in {result.scan_duration:.2f}s"
        )
        return result

    def scan_all_libraries(self) -> list[ScanResult]:
        """Scan every configured library; one library failing doesn't stop the rest."""
        results: list[ScanResult] = []
        for library in self.db.list_libraries():
            try:
                results.append(self.scan_library(library.id))
            except (OSError, LibraryError) as e:
                log.error(f"Failed to scan library {library.display_name}: {e}")
        return results

    def _scan_directory(self, library_id: str, directory: LibraryPath) -> DirectoryScanResult:
        start = time.monotonic()
        discoveries = discover_audiobooks(directory.path, probe=self.config.probe_durations)

        new_books: list[Audiobook] = []
        for discovery in discoveries:
            if already_imported(self.db, discovery.asset_path):
                continue

            audiobook = Audiobook(
                id=str(uuid.uuid4()),
                library_id=library_id,
                library_path_id=directory.id,
                asset_path=discovery.asset_path,
            )
            try:
                self.db.create_audiobook(audiobook, discovery.media_files)
            except LibraryError as e:
                log.warning(
                    f"Failed to create audiobook at {discovery.asset_path} "
                    f"for library {library_id}: {e}"
                )
                continue
            new_books.append(self.db.get_audiobook(audiobook.id))

        self.db.update_last_scanned(directory.id)
        return DirectoryScanResult(
            directory_id=directory.id,
            directory_path=directory.path,
            books_found=len(discoveries),
            new_books=new_books,
            scan_duration=time.monotonic() - start,
        )
