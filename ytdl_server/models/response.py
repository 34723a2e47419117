from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class FormatDescriptor(BaseModel):
    """One entry of yt-dlp's formats list"""
    format_id: Optional[str] = None
    ext: Optional[str] = None
    quality: Optional[float] = None
    filesize: Optional[int] = None


class VideoInfo(BaseModel):
    """Video information projected from yt-dlp --dump-json"""
    title: Optional[str] = None
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    uploader: Optional[str] = None
    description: Optional[str] = None
    formats: List[FormatDescriptor] = []


class VideoInfoResponse(BaseModel):
    success: bool = True
    data: VideoInfo


class DownloadUrlResponse(BaseModel):
    """Reference to a retained file"""
    success: bool = True
    downloadUrl: str
    fileName: str
    fileSize: int
    message: str = "File ready for download"


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str


class ConfigResponse(BaseModel):
    success: bool = True
    config: Dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
