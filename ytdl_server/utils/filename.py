import re

MAX_FILENAME_LENGTH = 200

_NON_PRINTABLE_ASCII = re.compile(r'[^\x20-\x7E]')
_QUOTES_AND_BACKSLASHES = re.compile(r'["\\]')
_HEADER_UNSAFE = re.compile(r'[|<>:]')
_WHITESPACE_RUN = re.compile(r'\s+')


def sanitize_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Make a filename safe for a Content-Disposition header value"""
    name = _NON_PRINTABLE_ASCII.sub('', name)
    name = _QUOTES_AND_BACKSLASHES.sub('', name)
    name = _HEADER_UNSAFE.sub('-', name)
    name = _WHITESPACE_RUN.sub(' ', name)
    # Stripping after the cut keeps the result idempotent
    return name.strip()[:max_length].strip()


def strip_token_prefix(filename: str, token: str) -> str:
    """Remove the '{token}_' prefix yt-dlp was told to write"""
    prefix = f"{token}_"
    if filename.startswith(prefix):
        return filename[len(prefix):]
    return filename
