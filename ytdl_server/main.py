import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.console import Console
from rich.table import Table
from starlette.exceptions import HTTPException
from ytdl_server import __version__
from ytdl_server.api import download, files, health, info
from ytdl_server.config.settings import Settings, load_settings
from ytdl_server.core.errors import DownloaderError
from ytdl_server.core.logging import logger
from ytdl_server.services.jobs import JobRunner
from ytdl_server.services.retention import RetentionSweeper
from ytdl_server.services.ytdlp import SubprocessExecutor

console = Console()

ROUTES = [
    ("GET", "/api/health"),
    ("GET", "/api/config"),
    ("POST", "/api/video-info"),
    ("POST", "/api/download (binary)"),
    ("POST", "/api/download-mp3 (binary)"),
    ("POST", "/api/download-url (returns URL)"),
    ("POST", "/api/download-mp3-url (returns URL)"),
    ("GET", "/downloads/:filename"),
    ("POST", "/api/cleanup-all"),
    ("DELETE", "/api/cleanup/:filename"),
]


def print_startup_banner(settings: Settings) -> None:
    """Show the effective configuration and the route table"""
    table = Table(title="Environment Configuration", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.public_view().items():
        table.add_row(key, "[dim]not set[/dim]" if value is None else str(value))
    console.print(table)

    console.print(f"[green]Server is running on http://{settings.host}:{settings.port}[/green]")
    for method, path in ROUTES:
        console.print(f"   - {method:<6} {path}")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(settings: Optional[Settings] = None, executor: Optional[SubprocessExecutor] = None) -> FastAPI:
    """Build the application around one immutable settings object"""
    settings = settings or load_settings()
    output_dir = os.path.abspath(settings.output_path)
    os.makedirs(output_dir, exist_ok=True)

    runner = JobRunner(settings, executor=executor)
    sweeper = RetentionSweeper(output_dir, settings.retention)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        yield
        await sweeper.stop()

    app = FastAPI(
        title="yt-dlp file server",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.runner = runner
    app.state.sweeper = sweeper

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origin.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Length"],
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request.state.request_id = uuid.uuid4().hex[:8]
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(DownloaderError)
    async def downloader_error_handler(request: Request, exc: DownloaderError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request body")

    # Routes
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(info.router, prefix="/api", tags=["Info"])
    app.include_router(download.router, prefix="/api", tags=["Download"])
    app.include_router(files.router, tags=["Files"])

    logger.info(f"Output directory: {output_dir}")
    return app
