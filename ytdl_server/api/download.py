from typing import Optional
from fastapi import APIRouter, Request, Depends
from fastapi.responses import StreamingResponse
from ytdl_server.api.deps import get_runner
from ytdl_server.core.errors import DownloaderError
from ytdl_server.core.logging import log_info, log_error
from ytdl_server.models.internal import JobMode, JobResult
from ytdl_server.models.request import DownloadRequest, InfoRequest
from ytdl_server.models.response import DownloadUrlResponse
from ytdl_server.services.jobs import JobRunner
from ytdl_server.services.stream import ArtifactStreamer
from ytdl_server.utils.urls import safe_url_for_log

router = APIRouter()


async def run_download(
    request: Request,
    runner: JobRunner,
    url: Optional[str],
    mode: JobMode,
    format_str: Optional[str] = None
) -> JobResult:
    """Run a download job, logging failures with request context"""
    log_info(request, f"Downloading ({mode.value}): {safe_url_for_log(url or '')}")
    try:
        return await runner.run(url, mode, format_str)
    except DownloaderError as e:
        log_error(request, f"Error downloading: {e.message}")
        raise
    except Exception as e:
        log_error(request, f"Error downloading: {str(e)}")
        raise DownloaderError(str(e))


def stream_result(request: Request, runner: JobRunner, result: JobResult) -> StreamingResponse:
    generator, headers = ArtifactStreamer.open(result, runner)
    log_info(request, f"Streaming {result.file_name} ({result.file_size} bytes)")
    return StreamingResponse(
        generator,
        media_type=result.job.mode.media_type,
        headers=headers
    )


def url_response(request: Request, result: JobResult) -> DownloadUrlResponse:
    log_info(request, f"File ready at {result.download_url}")
    return DownloadUrlResponse(
        downloadUrl=result.download_url,
        fileName=result.file_name,
        fileSize=result.file_size
    )


@router.post("/download")
async def download_video(
    request: Request,
    video_request: DownloadRequest,
    runner: JobRunner = Depends(get_runner)
):
    """Download a video and stream it back as an attachment"""
    result = await run_download(request, runner, video_request.url, JobMode.DOWNLOAD_BINARY, video_request.format)
    return stream_result(request, runner, result)


@router.post("/download-mp3")
async def download_mp3(
    request: Request,
    video_request: InfoRequest,
    runner: JobRunner = Depends(get_runner)
):
    """Extract mp3 audio and stream it back as an attachment"""
    result = await run_download(request, runner, video_request.url, JobMode.DOWNLOAD_AUDIO_BINARY)
    return stream_result(request, runner, result)


@router.post("/download-url", response_model=DownloadUrlResponse)
async def download_video_url(
    request: Request,
    video_request: DownloadRequest,
    runner: JobRunner = Depends(get_runner)
):
    """Download a video and return a link to it instead of the bytes"""
    result = await run_download(request, runner, video_request.url, JobMode.DOWNLOAD_URL_REF, video_request.format)
    return url_response(request, result)


@router.post("/download-mp3-url", response_model=DownloadUrlResponse)
async def download_mp3_url(
    request: Request,
    video_request: InfoRequest,
    runner: JobRunner = Depends(get_runner)
):
    """Extract mp3 audio and return a link to it instead of the bytes"""
    result = await run_download(request, runner, video_request.url, JobMode.DOWNLOAD_AUDIO_URL_REF)
    return url_response(request, result)
