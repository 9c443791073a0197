"""Tests for errors.py -- exception hierarchy and messages."""

import pytest

from audiobook_library.errors import (
    ConfigError,
    DirectoryUnreadableError,
    DuplicateAssetError,
    ImportFolderDisabledError,
    InvalidOverrideError,
    LibraryError,
    LibraryPathNotFoundError,
    NoAudioFilesFoundError,
    NoLibraryAssignedError,
    NotFoundError,
    PathEscapesRootError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            ConfigError,
            NotFoundError,
            PathEscapesRootError,
            DirectoryUnreadableError,
            ImportFolderDisabledError,
            NoAudioFilesFoundError,
            LibraryPathNotFoundError,
            NoLibraryAssignedError,
            DuplicateAssetError,
            InvalidOverrideError,
        ],
    )
    def test_all_inherit_from_library_error(self, cls):
        assert issubclass(cls, LibraryError)

    def test_library_error_is_exception(self):
        assert issubclass(LibraryError, Exception)


class TestMessages:
    def test_not_found(self):
        err = NotFoundError("library", "abc")
        assert str(err) == "library not found: abc"
        assert err.kind == "library"
        assert err.key == "abc"

    def test_path_escapes_root(self):
        err = PathEscapesRootError("/library", "../etc")
        assert "path escapes root" in str(err)
        assert err.child == "../etc"

    def test_directory_unreadable_reason(self):
        assert str(DirectoryUnreadableError("/x", "Permission denied")) == (
            "directory unreadable: /x (Permission denied)"
        )
        assert str(DirectoryUnreadableError("/x")) == "directory unreadable: /x"

    def test_no_library_assigned(self):
        assert str(NoLibraryAssignedError("books")) == (
            "library path books is not assigned to a library"
        )

    def test_several_libraries_assigned(self):
        err = NoLibraryAssignedError("books", 2)
        assert "assigned to 2 libraries" in str(err)
        assert err.library_count == 2

    def test_no_audio(self):
        assert str(NoAudioFilesFoundError("/lib/A")) == "no audio files found in /lib/A"

    def test_invalid_override(self):
        err = InvalidOverrideError("title", "has value but is not locked - invalid state")
        assert str(err) == "field 'title' has value but is not locked - invalid state"
        assert err.field == "title"
