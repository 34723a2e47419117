from .errors import (
    ArtifactNotFoundError,
    DownloaderError,
    FilesystemError,
    JobTimeoutError,
    ParseError,
    SubprocessError,
    ValidationError,
)

__all__ = [
    "ArtifactNotFoundError",
    "DownloaderError",
    "FilesystemError",
    "JobTimeoutError",
    "ParseError",
    "SubprocessError",
    "ValidationError",
]
