"""Library configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseSettings):
    """All library configuration with layered resolution:
    .env file < environment variables (LIBRARY_*) < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LIBRARY_",
        extra="ignore",
    )

    # -- Storage --
    database_path: Path = Path("data/audiobook_library.db")

    # -- Browse boundaries --
    library_root: Path = Path(".")
    import_root: Path = Path(".")

    # -- Import defaults (seed for the import_settings row) --
    default_destination: Path = Path("data/library")
    default_template: str = "{author}/{title}"

    # -- Discovery --
    probe_durations: bool = False

    # -- Logging --
    log_dir: Path = Path("data/logs")
    log_level: str = "INFO"

    @field_validator(
        "database_path",
        "library_root",
        "import_root",
        "default_destination",
        "log_dir",
    )
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        return value if value.is_absolute() else Path.cwd() / value

    def ensure_dirs(self) -> None:
        """Create the runtime directories if they don't exist."""
        for d in (self.database_path.parent, self.log_dir):
            d.mkdir(parents=True, exist_ok=True)

    def setup_logging(self) -> None:
        """Configure loguru for the library."""
        logger.remove()

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "library.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
