"""Tests for cli.py -- Click CLI interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from audiobook_library.cli import main


@pytest.fixture(autouse=True)
def _use_tmp_dirs(tmp_path, monkeypatch):
    """Point database, logs and browse roots at tmp_path."""
    monkeypatch.setenv("LIBRARY_DATABASE_PATH", str(tmp_path / "state" / "lib.db"))
    monkeypatch.setenv("LIBRARY_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LIBRARY_LIBRARY_ROOT", str(tmp_path / "media"))
    monkeypatch.setenv("LIBRARY_IMPORT_ROOT", str(tmp_path / "inbox"))
    monkeypatch.setenv("LIBRARY_DEFAULT_DESTINATION", str(tmp_path / "media" / "books"))
    # Log lines on stderr would end up in the captured JSON output
    monkeypatch.setenv("LIBRARY_LOG_LEVEL", "ERROR")
    # Keep a stray .env in the working directory out of the picture
    monkeypatch.chdir(tmp_path)


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"audio")


def _invoke(*args: str) -> dict | list:
    result = CliRunner().invoke(main, list(args), catch_exceptions=False)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


@pytest.fixture
def library(tmp_path):
    """Library 'Main' linked to tmp_path/media/books; returns (library_id, path_id, root)."""
    root = tmp_path / "media" / "books"
    root.mkdir(parents=True)
    lib = _invoke("library", "add", "Main")
    lp = _invoke("path", "add", str(root))
    _invoke("path", "link", lib["id"], lp["id"])
    return lib["id"], lp["id"], root


class TestHelpOutput:
    def test_help_flag(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Scan, import, and curate" in result.output
        for command in ("scan", "import", "browse", "library", "metadata"):
            assert command in result.output


class TestScan:
    def test_scan_library(self, library):
        lib_id, _, root = library
        _touch(root / "Author" / "Book" / "01.mp3")
        report = _invoke("scan", lib_id)
        assert report["library_name"] == "Main"
        assert report["total_new_books"] == 1
        assert _invoke("scan", lib_id)["total_new_books"] == 0

    def test_scan_all(self, library):
        _, _, root = library
        _touch(root / "loose.mp3")
        reports = _invoke("scan", "--all")
        assert [r["total_new_books"] for r in reports] == [1]

    def test_requires_target(self):
        result = CliRunner().invoke(main, ["scan"])
        assert result.exit_code != 0
        assert "LIBRARY_ID or --all" in result.output

    def test_unknown_library(self):
        result = CliRunner().invoke(main, ["scan", "nope"])
        assert result.exit_code == 1
        assert "library not found: nope" in result.output


class TestImport:
    def test_import_partial(self, library, tmp_path):
        _, _, root = library
        inbox = tmp_path / "inbox"
        _touch(inbox / "A - One" / "01.mp3")
        _touch(inbox / "A - Two" / "01.mp3")
        _touch(inbox / "A - Notes" / "readme.txt")
        folder = _invoke("folder", "add", str(inbox))
        job = _invoke("import", folder["id"], "A - One", "A - Notes", "A - Two")
        assert job["status"] == "partial"
        assert len(job["imported_books"]) == 2
        assert len(job["errors"]) == 1
        assert (root / "A" / "One" / "01.mp3").exists()

    def test_template_option(self, library, tmp_path):
        _, _, root = library
        inbox = tmp_path / "inbox"
        _touch(inbox / "A - One" / "01.mp3")
        folder = _invoke("folder", "add", str(inbox))
        job = _invoke("import", folder["id"], "A - One", "--template", "flat")
        assert job["imported_books"][0]["asset_path"] == str(root / "A - One")

    def test_disabled_folder(self, tmp_path):
        inbox = tmp_path / "inbox"
        inbox.mkdir()
        folder = _invoke("folder", "add", str(inbox), "--disabled")
        result = CliRunner().invoke(main, ["import", folder["id"], "x"])
        assert result.exit_code == 1
        assert "import folder disabled" in result.output

    def test_settings_set(self, tmp_path):
        settings = _invoke("settings", "set", "--template", "{author}/{series}/{title}")
        assert settings["template"] == "{author}/{series}/{title}"
        assert settings["destination_path"] == str(tmp_path / "media" / "books")


class TestBrowse:
    def test_library_root(self, tmp_path):
        (tmp_path / "media" / "books").mkdir(parents=True)
        listing = _invoke("browse")
        assert [e["name"] for e in listing["entries"]] == ["books"]

    def test_import_root(self, tmp_path):
        (tmp_path / "inbox" / "staged").mkdir(parents=True)
        listing = _invoke("browse", "--import-root")
        assert [e["path"] for e in listing["entries"]] == ["staged"]

    def test_escape_rejected(self, tmp_path):
        (tmp_path / "media").mkdir()
        result = CliRunner().invoke(main, ["browse", "../.."])
        assert result.exit_code == 1
        assert "path escapes root" in result.output

    def test_entries_with_counts_and_sizes(self, tmp_path):
        books = tmp_path / "media" / "books"
        _touch(books / "Author" / "Book" / "01.mp3")
        (books / "notes.txt").write_bytes(b"12345")
        entries = {e["name"]: e for e in _invoke("browse", "books", "--entries")}
        assert entries["Author"]["file_count"] == 1
        assert entries["notes.txt"]["size"] == 5
        assert entries["notes.txt"]["is_audiobook"] is False

    def test_entries_escape_rejected(self, tmp_path):
        (tmp_path / "media").mkdir()
        result = CliRunner().invoke(main, ["browse", "..", "--entries"])
        assert result.exit_code == 1
        assert "path escapes root" in result.output

    def test_import_folder(self, tmp_path):
        inbox = tmp_path / "inbox"
        _touch(inbox / "book.m4b")
        folder = _invoke("folder", "add", str(inbox))
        entries = _invoke("browse", "--folder", folder["id"])
        assert entries[0]["is_audiobook"] is True


class TestMetadata:
    @pytest.fixture
    def book_id(self, library):
        lib_id, _, root = library
        _touch(root / "Jane Doe - Book" / "01.mp3")
        report = _invoke("scan", lib_id)
        return report["directories"][0]["new_books"][0]["id"]

    def test_set_and_show(self, book_id):
        saved = _invoke("metadata", "set", book_id, "title", "My Title")
        assert saved == {"title": {"locked": True, "value": "My Title"}}
        assert _invoke("metadata", "show", book_id)["title"] == "My Title"

    def test_lock_and_unlock(self, book_id):
        assert _invoke("metadata", "lock", book_id, "author") == {"author": {"locked": True}}
        assert _invoke("metadata", "unlock", book_id, "author") == {}

    def test_clear(self, book_id):
        _invoke("metadata", "set", book_id, "title", "My Title")
        result = CliRunner().invoke(main, ["metadata", "clear", book_id])
        assert result.exit_code == 0
        assert _invoke("metadata", "show", book_id)["title"] is None

    def test_unknown_field(self, book_id):
        result = CliRunner().invoke(main, ["metadata", "set", book_id, "colour", "x"])
        assert result.exit_code == 2

    def test_unknown_audiobook(self):
        result = CliRunner().invoke(main, ["metadata", "show", "nope"])
        assert result.exit_code == 1
        assert "audiobook not found" in result.output
