"""Tests for ops/planner.py -- name parsing and destination templates."""

from pathlib import Path

import pytest

from audiobook_library.errors import PathEscapesRootError
from audiobook_library.models import BookMetadata
from audiobook_library.ops.planner import build_destination, extract_metadata


class TestExtractMetadata:
    def test_plain_name(self):
        meta = extract_metadata("/inbox/Dune")
        assert meta.original_name == "Dune"
        assert meta.title == "Dune"
        assert meta.author == "Unknown Author"

    def test_dash_pattern(self):
        meta = extract_metadata("/inbox/Frank Herbert - Dune")
        assert meta.author == "Frank Herbert"
        assert meta.title == "Dune"

    def test_dash_pattern_keeps_later_dashes(self):
        meta = extract_metadata("/inbox/Frank Herbert - Dune - Book 1")
        assert meta.author == "Frank Herbert"
        assert meta.title == "Dune - Book 1"

    def test_underscore_pattern(self):
        meta = extract_metadata("/inbox/Herbert_Dune_Messiah")
        assert meta.author == "Herbert"
        assert meta.title == "Dune Messiah"

    def test_dash_takes_precedence_over_underscore(self):
        meta = extract_metadata("/inbox/Jane Doe - My_Book")
        assert meta.author == "Jane Doe"
        assert meta.title == "My_Book"

    def test_file_name_keeps_extension(self):
        meta = extract_metadata(Path("/inbox/Jane Doe - My Book.m4b"))
        assert meta.original_name == "Jane Doe - My Book.m4b"
        assert meta.title == "My Book.m4b"

    def test_other_fields_empty(self):
        meta = extract_metadata("/inbox/Dune")
        assert meta.series == ""
        assert meta.series_number == ""
        assert meta.narrator == ""
        assert meta.year == ""


class TestBuildDestination:
    def test_author_title(self):
        meta = BookMetadata(original_name="x", author="Jane Doe", title="My Book")
        assert build_destination(meta, "{author}/{title}", "/dest") == Path("/dest/Jane Doe/My Book")

    def test_flat(self):
        meta = BookMetadata(original_name="Jane Doe - My Book", author="Jane Doe", title="My Book")
        assert build_destination(meta, "flat", "/dest") == Path("/dest/Jane Doe - My Book")

    def test_colon_sanitized(self):
        meta = BookMetadata(original_name="x", author="Jane Doe", title="Dune: Part -- Two")
        dest = build_destination(meta, "{author}/{title}", "/dest")
        assert dest == Path("/dest/Jane Doe/Dune- Part - Two")
        assert "--" not in str(dest)

    def test_slash_in_field_does_not_nest(self):
        meta = BookMetadata(original_name="x", author="AC/DC", title="Live")
        assert build_destination(meta, "{author}/{title}", "/dest") == Path("/dest/AC-DC/Live")

    def test_empty_author_and_title_defaults(self):
        meta = BookMetadata(original_name="x", author="", title="  ")
        assert build_destination(meta, "{author}/{title}", "/dest") == Path(
            "/dest/Unknown Author/Unknown Title"
        )

    def test_empty_series_segment_collapsed(self):
        meta = BookMetadata(original_name="x", author="A", title="T")
        assert build_destination(meta, "{author}/{series}/{title}", "/dest") == Path("/dest/A/T")

    def test_series_num_and_year_raw(self):
        meta = BookMetadata(
            original_name="x", author="A", title="T", series="S: X", series_number="1:2", year="2020"
        )
        dest = build_destination(meta, "{author}/{series}/{series_num} - {title} ({year})", "/dest")
        assert dest == Path("/dest/A/S- X/1:2 - T (2020)")

    def test_narrator_token(self):
        meta = BookMetadata(original_name="x", author="A", title="T", narrator="N|N")
        assert build_destination(meta, "{author}/{title} [{narrator}]", "/dest") == Path(
            "/dest/A/T [N-N]"
        )

    def test_leading_trailing_slashes_trimmed(self):
        meta = BookMetadata(original_name="x", author="A", title="T")
        assert build_destination(meta, "/{author}/{title}/", "/dest") == Path("/dest/A/T")

    @pytest.mark.parametrize("template", ["{author}", "books/{author}"])
    def test_literal_and_single_token(self, template):
        meta = BookMetadata(original_name="x", author="A", title="T")
        assert build_destination(meta, template, "/dest") == Path("/dest") / template.replace(
            "{author}", "A"
        )

    def test_dot_fields_stay_inside_root(self):
        meta = BookMetadata(original_name=".. - ..", author="..", title="..")
        assert build_destination(meta, "{author}/{title}", "/dest/library") == Path(
            "/dest/library/-/-"
        )

    def test_raw_token_cannot_climb_out(self):
        meta = BookMetadata(original_name="x", author="A", title="T", year="..")
        with pytest.raises(PathEscapesRootError):
            build_destination(meta, "{year}/../{title}", "/dest/library")

    def test_template_path_normalized(self):
        meta = BookMetadata(original_name="x", author="A", title="T")
        assert build_destination(meta, "{author}/./x/../{title}", "/dest") == Path("/dest/A/T")

    def test_flat_dot_name_rejected(self):
        meta = BookMetadata(original_name="..", author="", title="")
        with pytest.raises(PathEscapesRootError):
            build_destination(meta, "flat", "/dest/library")
