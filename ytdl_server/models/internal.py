import os
from enum import Enum
from pydantic import BaseModel
from typing import Optional
from ytdl_server.models.response import VideoInfo

class JobMode(str, Enum):
    """What a job asks of yt-dlp and how the result is returned"""
    VIDEO_INFO = "video_info"
    DOWNLOAD_BINARY = "download_binary"
    DOWNLOAD_AUDIO_BINARY = "download_audio_binary"
    DOWNLOAD_URL_REF = "download_url_ref"
    DOWNLOAD_AUDIO_URL_REF = "download_audio_url_ref"

    @property
    def is_audio(self) -> bool:
        return self in (JobMode.DOWNLOAD_AUDIO_BINARY, JobMode.DOWNLOAD_AUDIO_URL_REF)

    @property
    def is_binary(self) -> bool:
        return self in (JobMode.DOWNLOAD_BINARY, JobMode.DOWNLOAD_AUDIO_BINARY)

    @property
    def media_type(self) -> str:
        return "audio/mpeg" if self.is_audio else "application/octet-stream"

class DownloadJob(BaseModel):
    """One request's worth of work, never persisted"""
    url: str
    mode: JobMode
    format: str = "best"
    token: str
    created_at: int
    output_template: str

class JobResult(BaseModel):
    """Outcome of a finished job"""
    job: DownloadJob
    info: Optional[VideoInfo] = None
    artifact_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    download_url: Optional[str] = None

    @property
    def raw_file_name(self) -> Optional[str]:
        """On-disk name including the token prefix"""
        if self.artifact_path is None:
            return None
        return os.path.basename(self.artifact_path)
