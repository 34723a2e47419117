from .filename import sanitize_filename, strip_token_prefix
from .urls import build_download_url, safe_url_for_log

__all__ = ["build_download_url", "safe_url_for_log", "sanitize_filename", "strip_token_prefix"]
