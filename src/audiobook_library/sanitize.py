"""Path component sanitization for template-built destinations."""

import re

from loguru import logger

log = logger.bind(stage="sanitize")


def sanitize_path_component(value: str) -> str:
    """Make a metadata value safe to use as one directory name.

    Replaces path-hostile characters with dashes, trims whitespace,
    and collapses runs of dashes. A value made only of dots ("." or
    "..") would name the current or parent directory, so it becomes "-".
    """
    # Replace unsafe characters
    sanitized = re.sub(r'[/\\:*?"<>|]', "-", value)
    sanitized = sanitized.strip()
    # Collapse repeated dashes
    sanitized = re.sub(r"-{2,}", "-", sanitized)
    if sanitized and not sanitized.strip("."):
        sanitized = "-"
    if sanitized != value:
        log.debug(f"sanitize_path_component: '{value}' -> '{sanitized}'")
    return sanitized
