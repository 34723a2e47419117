"""
Error taxonomy for download jobs.

Every error carries the HTTP status it is rendered with; the message is passed
through to the client unchanged.
"""

from typing import Optional


class DownloaderError(Exception):
    """Base exception for all job and file errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DownloaderError):
    """Raised when required request input is missing. Never spawns yt-dlp."""

    status_code = 400


class SubprocessError(DownloaderError):
    """Raised when yt-dlp exits with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class JobTimeoutError(SubprocessError):
    """Raised when yt-dlp exceeds its wall-clock timeout and is killed."""


class ParseError(DownloaderError):
    """Raised when yt-dlp's JSON output cannot be decoded."""


class ArtifactNotFoundError(DownloaderError):
    """Raised when yt-dlp reported success but no output file carries the job token."""


class FilesystemError(DownloaderError):
    """Raised for stat/delete failures in the output directory."""
