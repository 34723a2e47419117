from fastapi import APIRouter, Request, Depends
from ytdl_server.api.deps import get_runner
from ytdl_server.core.errors import DownloaderError
from ytdl_server.core.logging import log_info, log_error
from ytdl_server.models.internal import JobMode
from ytdl_server.models.request import InfoRequest
from ytdl_server.models.response import VideoInfoResponse
from ytdl_server.services.jobs import JobRunner
from ytdl_server.utils.urls import safe_url_for_log

router = APIRouter()

@router.post("/video-info", response_model=VideoInfoResponse)
async def get_video_info(
    request: Request,
    video_request: InfoRequest,
    runner: JobRunner = Depends(get_runner)
):
    """Fetch video metadata without downloading"""
    log_info(request, f"Fetching video info for: {safe_url_for_log(video_request.url or '')}")

    try:
        result = await runner.run(video_request.url, JobMode.VIDEO_INFO)
    except DownloaderError as e:
        log_error(request, f"Error fetching video info: {e.message}")
        raise
    except Exception as e:
        log_error(request, f"Error fetching video info: {str(e)}")
        raise DownloaderError(str(e))

    log_info(request, f"Info retrieved: {result.info.title}")
    return VideoInfoResponse(data=result.info)
