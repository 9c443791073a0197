"""Exception hierarchy for the audiobook library."""


class LibraryError(Exception):
    """Base exception for all library errors."""


class ConfigError(LibraryError):
    """Invalid or missing configuration."""


class NotFoundError(LibraryError):
    """A library, directory, import folder, or audiobook id is unknown."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class PathEscapesRootError(LibraryError):
    """A client-supplied path resolves outside its configured root."""

    def __init__(self, root: str, child: str) -> None:
        super().__init__(f"path escapes root: {child!r} (root {root})")
        self.root = root
        self.child = child


class DirectoryUnreadableError(LibraryError):
    """A directory could not be listed."""

    def __init__(self, path: str, reason: str = "") -> None:
        message = f"directory unreadable: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path


class ImportFolderDisabledError(LibraryError):
    """The selected import folder is disabled."""

    def __init__(self, name: str) -> None:
        super().__init__(f"import folder disabled: {name}")
        self.name = name


class NoAudioFilesFoundError(LibraryError):
    """An imported destination contains no recognized audio files."""

    def __init__(self, path: str) -> None:
        super().__init__(f"no audio files found in {path}")
        self.path = path


class LibraryPathNotFoundError(LibraryError):
    """No configured library path contains the given asset path."""

    def __init__(self, asset_path: str) -> None:
        super().__init__(
            f"no library path found that contains asset path: {asset_path}"
        )
        self.asset_path = asset_path


class NoLibraryAssignedError(LibraryError):
    """A library path is linked to no library (or to more than one)."""

    def __init__(self, path_name: str, library_count: int = 0) -> None:
        if library_count == 0:
            message = f"library path {path_name} is not assigned to a library"
        else:
            message = (
                f"library path {path_name} is assigned to {library_count} "
                f"libraries, expected exactly one"
            )
        super().__init__(message)
        self.path_name = path_name
        self.library_count = library_count


class DuplicateAssetError(LibraryError):
    """An audiobook with this asset path is already registered."""

    def __init__(self, asset_path: str) -> None:
        super().__init__(f"audiobook already exists at {asset_path}")
        self.asset_path = asset_path


class InvalidOverrideError(LibraryError):
    """A metadata override payload violates the lock semantics."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"field '{field}' {message}")
        self.field = field
