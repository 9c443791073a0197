"""Tests for scan_orchestrator.py -- library scans across directories."""

from pathlib import Path
from unittest.mock import patch

import pytest

from audiobook_library.config import LibraryConfig
from audiobook_library.errors import DirectoryUnreadableError, NotFoundError
from audiobook_library.library_db import LibraryDB
from audiobook_library.scan_orchestrator import LibraryScanner


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"audio")


@pytest.fixture
def db(tmp_path):
    ldb = LibraryDB(tmp_path / "state" / "test.db")
    yield ldb
    ldb.close()


@pytest.fixture
def scanner(db, tmp_path):
    config = LibraryConfig(_env_file=None, log_dir=tmp_path / "logs")
    return LibraryScanner(db, config)


@pytest.fixture
def library(db, tmp_path):
    """Library 'Main' backed by tmp_path/books with two books and a loose file."""
    root = tmp_path / "books"
    _touch(root / "Author" / "Book One" / "01.mp3")
    _touch(root / "Author" / "Book One" / "02.mp3")
    _touch(root / "Standalone" / "track.m4b")
    _touch(root / "loose.mp3")
    lib = db.create_library("Main")
    lp = db.create_library_path(root)
    db.set_library_directories(lib.id, [lp.id])
    return lib, lp, root


class TestScanLibrary:
    def test_registers_discoveries(self, scanner, library):
        lib, lp, root = library
        result = scanner.scan_library(lib.id)
        assert result.library_id == lib.id
        assert result.library_name == "Main"
        assert result.total_books_found == 3
        assert result.total_new_books == 3
        assert len(result.directories) == 1
        dir_result = result.directories[0]
        assert dir_result.directory_id == lp.id
        assert dir_result.directory_path == str(root)
        paths = sorted(b.asset_path for b in dir_result.new_books)
        assert paths == sorted(
            [
                str(root / "loose.mp3"),
                str(root / "Author" / "Book One"),
                str(root / "Standalone"),
            ]
        )

    def test_new_books_carry_ids_and_stats(self, scanner, library):
        lib, lp, root = library
        result = scanner.scan_library(lib.id)
        book = next(
            b for b in result.directories[0].new_books
            if b.asset_path == str(root / "Author" / "Book One")
        )
        assert book.library_id == lib.id
        assert book.library_path_id == lp.id
        assert book.file_count == 2
        assert all(m.audiobook_id == book.id for m in book.media_files)

    def test_second_scan_adds_nothing(self, scanner, library, db):
        lib, _, _ = library
        scanner.scan_library(lib.id)
        second = scanner.scan_library(lib.id)
        assert second.total_new_books == 0
        assert second.total_books_found == 3
        assert len(db.list_audiobooks(lib.id)) == 3

    def test_picks_up_new_book(self, scanner, library):
        lib, _, root = library
        scanner.scan_library(lib.id)
        _touch(root / "Author" / "Book Two" / "01.mp3")
        second = scanner.scan_library(lib.id)
        assert second.total_new_books == 1
        assert second.directories[0].new_books[0].asset_path == str(root / "Author" / "Book Two")

    def test_never_removes_books(self, scanner, library, db):
        lib, _, root = library
        scanner.scan_library(lib.id)
        (root / "loose.mp3").unlink()
        scanner.scan_library(lib.id)
        assert len(db.list_audiobooks(lib.id)) == 3

    def test_updates_last_scanned(self, scanner, library, db):
        lib, lp, _ = library
        scanner.scan_library(lib.id)
        assert db.get_library_path_by_id(lp.id).last_scanned_at is not None

    def test_skips_disabled_directory(self, scanner, library, db):
        lib, lp, _ = library
        db.set_library_path_enabled(lp.id, False)
        result = scanner.scan_library(lib.id)
        assert result.directories == []
        assert result.total_books_found == 0

    def test_failing_directory_skipped(self, scanner, library, db, tmp_path):
        lib, lp, _ = library
        other_root = tmp_path / "other"
        _touch(other_root / "Book" / "01.mp3")
        other = db.create_library_path(other_root)
        db.set_library_directories(lib.id, [lp.id, other.id])

        from audiobook_library.scanner import discover_audiobooks as real_discover

        def _flaky(directory, probe=False):
            if str(directory) == str(other_root):
                raise DirectoryUnreadableError(str(directory), "boom")
            return real_discover(directory, probe)

        with patch("audiobook_library.scan_orchestrator.discover_audiobooks", side_effect=_flaky):
            result = scanner.scan_library(lib.id)
        assert [d.directory_id for d in result.directories] == [lp.id]
        assert result.total_new_books == 3

    def test_missing_directory_skipped(self, scanner, db, tmp_path):
        lib = db.create_library("Ghost")
        lp = db.create_library_path(tmp_path / "does-not-exist")
        db.set_library_directories(lib.id, [lp.id])
        result = scanner.scan_library(lib.id)
        assert result.directories == []
        assert result.total_new_books == 0

    def test_unknown_library(self, scanner):
        with pytest.raises(NotFoundError):
            scanner.scan_library("nope")

    def test_duration_recorded(self, scanner, library):
        lib, _, _ = library
        result = scanner.scan_library(lib.id)
        assert result.scan_duration >= 0.0
        assert result.directories[0].scan_duration >= 0.0


class TestScanAllLibraries:
    def test_scans_every_library(self, scanner, library, db, tmp_path):
        other_root = tmp_path / "other"
        _touch(other_root / "Book" / "01.mp3")
        lib2 = db.create_library("Second")
        lp2 = db.create_library_path(other_root)
        db.set_library_directories(lib2.id, [lp2.id])
        results = scanner.scan_all_libraries()
        by_name = {r.library_name: r for r in results}
        assert by_name["Main"].total_new_books == 3
        assert by_name["Second"].total_new_books == 1

    def test_one_library_failing_does_not_stop_others(self, scanner, library, db):
        db.create_library("Broken")
        real_scan = scanner.scan_library

        def _flaky(library_id):
            if db.get_library_by_id(library_id).display_name == "Broken":
                raise NotFoundError("library", library_id)
            return real_scan(library_id)

        with patch.object(scanner, "scan_library", side_effect=_flaky):
            results = scanner.scan_all_libraries()
        assert [r.library_name for r in results] == ["Main"]

    def test_empty(self, scanner):
        assert scanner.scan_all_libraries() == []
