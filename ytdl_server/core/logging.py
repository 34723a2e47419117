from fastapi import Request
import logging
from typing import Any
from rich.logging import RichHandler
from ytdl_server.config.settings import Settings

logger = logging.getLogger("ytdl_server")

def setup_logging(settings: Settings) -> None:
    """Configure the root logger once per process"""
    if settings.log_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler()
        fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    logging.basicConfig(
        level=settings.log_level,
        format=fmt,
        datefmt="[%X]",
        handlers=[handler],
        force=True
    )

class RequestLogAdapter(logging.LoggerAdapter):
    """Prefixes each record with the request id assigned by the middleware"""

    def process(self, msg, kwargs):
        request_id = self.extra["request_id"]
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[{request_id}] {msg}", kwargs


def request_logger(request: Request) -> RequestLogAdapter:
    return RequestLogAdapter(logger, {
        "request_id": getattr(request.state, "request_id", "-"),
        "route": f"{request.method} {request.url.path}",
    })

def log_info(request: Request, message: str, **kwargs: Any) -> None:
    request_logger(request).info(message, extra=kwargs)

def log_error(request: Request, message: str, **kwargs: Any) -> None:
    request_logger(request).error(message, extra=kwargs)

def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    request_logger(request).warning(message, extra=kwargs)
