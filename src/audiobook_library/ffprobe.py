"""Media duration lookup via the ffprobe binary.

Only used when LIBRARY_PROBE_DURATIONS is enabled; otherwise media files
keep a duration of 0 until something else fills it in.
"""

import subprocess
from pathlib import Path

from loguru import logger

log = logger.bind(stage="ffprobe")

_DURATION_ARGS = [
    "-show_entries", "format=duration",
    "-of", "csv=p=0",
]


def _run_ffprobe(media: Path) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["ffprobe", "-v", "error", *_DURATION_ARGS, str(media)],
        capture_output=True,
        text=True,
    )


def get_duration(media: Path) -> float:
    """Duration of a media file in seconds.

    Raises ValueError when ffprobe prints nothing usable (corrupt or
    unsupported file) and OSError when the binary can't be started.
    """
    output = _run_ffprobe(media).stdout.strip()
    if not output:
        raise ValueError(f"ffprobe returned empty duration for {media}")
    return float(output)


def probe_duration(media: Path) -> float:
    """get_duration() that logs and returns 0.0 instead of raising."""
    try:
        return get_duration(media)
    except (OSError, ValueError) as e:
        log.warning(f"Duration probe failed for {media}: {e}")
        return 0.0
