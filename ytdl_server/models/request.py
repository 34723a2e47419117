from pydantic import BaseModel, Field
from typing import Optional

class InfoRequest(BaseModel):
    # Presence is checked by the job runner so a missing url yields a 400 envelope
    url: Optional[str] = Field(None, description="Video URL")

class DownloadRequest(InfoRequest):
    format: Optional[str] = Field(None, description="yt-dlp format selector, defaults to 'best'")
