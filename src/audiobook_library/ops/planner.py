"""Plan where a staged audiobook lands in the managed library.

extract_metadata() guesses author and title from a staged name;
build_destination() expands an import template against that guess.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..models import UNKNOWN_AUTHOR, UNKNOWN_TITLE, BookMetadata
from ..paths import resolve_within_root
from ..sanitize import sanitize_path_component

log = logger.bind(stage="planner")

FLAT_TEMPLATE = "flat"


def extract_metadata(path: str | Path) -> BookMetadata:
    """Parse a file or folder name into best-effort metadata.

    Patterns tried in order:
        "Author - Title"  -> split on the first " - "
        "Author_Title"    -> first segment is the author, the rest is the title
    Anything else keeps the whole name as the title.
    """
    base = Path(path).name
    meta = BookMetadata(original_name=base, title=base, author=UNKNOWN_AUTHOR)

    if " - " in base:
        author, _, title = base.partition(" - ")
        meta.author = author.strip()
        meta.title = title.strip()
        log.debug(f"extract_metadata: dash pattern author='{meta.author}' title='{meta.title}'")
    elif "_" in base:
        parts = base.split("_")
        meta.author = parts[0].strip()
        meta.title = " ".join(parts[1:]).strip()
        log.debug(f"extract_metadata: underscore pattern author='{meta.author}' title='{meta.title}'")

    return meta


def _or_default(value: str, default: str) -> str:
    return value if value.strip() else default


def build_destination(
    metadata: BookMetadata, template: str, destination_root: str | Path
) -> Path:
    """Expand template tokens and join the result onto destination_root.

    Tokens: {author} {title} {series} {series_num} {narrator} {year}.
    The "flat" template places the staged name directly under the root.
    The expanded path is normalized and must stay inside destination_root;
    otherwise PathEscapesRootError is raised.
    """
    if template == FLAT_TEMPLATE:
        dest, _ = resolve_within_root(destination_root, metadata.original_name)
        return dest

    replacements = {
        "{author}": sanitize_path_component(_or_default(metadata.author, UNKNOWN_AUTHOR)),
        "{title}": sanitize_path_component(_or_default(metadata.title, UNKNOWN_TITLE)),
        "{series}": sanitize_path_component(metadata.series),
        "{series_num}": metadata.series_number,
        "{narrator}": sanitize_path_component(metadata.narrator),
        "{year}": metadata.year,
    }

    rel = template
    for token, value in replacements.items():
        rel = rel.replace(token, value)

    # Empty tokens leave empty segments behind
    while "//" in rel:
        rel = rel.replace("//", "/")
    rel = rel.strip("/")

    dest, _ = resolve_within_root(destination_root, rel)
    log.debug(f"build_destination: template='{template}' -> {dest}")
    return dest
