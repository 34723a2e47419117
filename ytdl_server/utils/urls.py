from urllib.parse import quote, urlparse

def safe_url_for_log(url: str) -> str:
    """Safe URL for logging (query string dropped)"""
    try:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return url[:100]
        base_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
        if parsed.query:
            return f"{base_url}?..."
        return base_url
    except ValueError:
        return "invalid_url"

def build_download_url(base_url: str, filename: str) -> str:
    """Public URL of a retained file under the /downloads static route"""
    encoded = quote(filename, safe="!*'()")
    return f"{base_url.rstrip('/')}/downloads/{encoded}"
