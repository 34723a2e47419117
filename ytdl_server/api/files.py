import os
import aiofiles.os
from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import FileResponse
from ytdl_server.api.deps import get_settings, get_sweeper
from ytdl_server.config.settings import Settings
from ytdl_server.core.errors import DownloaderError, FilesystemError, ValidationError
from ytdl_server.core.logging import log_info, log_error
from ytdl_server.models.response import MessageResponse
from ytdl_server.services.retention import RetentionSweeper

router = APIRouter()


def resolve_in_output_dir(settings: Settings, filename: str) -> str:
    """Join a client-supplied name onto the output directory, refusing anything path-like"""
    if not filename or filename in (".", "..") or os.path.basename(filename) != filename or "\\" in filename:
        raise ValidationError("Invalid filename")
    return os.path.join(os.path.abspath(settings.output_path), filename)


@router.get("/downloads/{filename}")
async def serve_download(filename: str, settings: Settings = Depends(get_settings)):
    """Serve a retained file"""
    try:
        path = resolve_in_output_dir(settings, filename)
    except ValidationError:
        raise HTTPException(status_code=404, detail="File not found")

    if not await aiofiles.os.path.isfile(path):
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(path)


@router.delete("/api/cleanup/{filename}", response_model=MessageResponse)
async def delete_file(
    request: Request,
    filename: str,
    settings: Settings = Depends(get_settings)
):
    """Delete one file from the output directory"""
    path = resolve_in_output_dir(settings, filename)
    try:
        await aiofiles.os.remove(path)
    except OSError as e:
        log_error(request, f"Could not delete {filename}: {e}")
        raise FilesystemError(f"Could not delete {filename}: {e.strerror or e}")

    log_info(request, f"Deleted {filename}")
    return MessageResponse(message="File deleted successfully")


@router.post("/api/cleanup-all", response_model=MessageResponse)
async def cleanup_all(request: Request, sweeper: RetentionSweeper = Depends(get_sweeper)):
    """Run the retention sweep immediately"""
    log_info(request, "Manual cleanup triggered via API")
    try:
        report = await sweeper.sweep()
    except DownloaderError as e:
        log_error(request, f"Cleanup error: {e.message}")
        raise

    log_info(request, f"Manual cleanup removed {report.deleted} file(s), {report.failed} error(s)")
    return MessageResponse(message="Cleanup completed successfully")
