from .internal import DownloadJob, JobMode, JobResult
from .request import DownloadRequest, InfoRequest
from .response import DownloadUrlResponse, VideoInfo

__all__ = [
    "DownloadJob",
    "DownloadRequest",
    "DownloadUrlResponse",
    "InfoRequest",
    "JobMode",
    "JobResult",
    "VideoInfo",
]
