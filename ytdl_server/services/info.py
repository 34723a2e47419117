import json
import pydantic
from ytdl_server.core.errors import ParseError
from ytdl_server.models.response import FormatDescriptor, VideoInfo

class VideoInfoService:
    """Project yt-dlp metadata onto the public VideoInfo shape"""

    @staticmethod
    def parse(stdout: bytes) -> VideoInfo:
        """
        Decode one --dump-json document and keep the fields clients rely on.
        Raises ParseError when the output is not a JSON object.
        """
        try:
            info = json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse yt-dlp output: {e.msg}")

        if not isinstance(info, dict):
            raise ParseError("Failed to parse yt-dlp output: expected a JSON object")

        try:
            return VideoInfo(
                title=info.get("title"),
                duration=info.get("duration"),
                thumbnail=info.get("thumbnail"),
                uploader=info.get("uploader"),
                description=info.get("description"),
                formats=[
                    FormatDescriptor(
                        format_id=f.get("format_id"),
                        ext=f.get("ext"),
                        quality=f.get("quality"),
                        filesize=f.get("filesize"),
                    )
                    for f in info.get("formats") or []
                    if isinstance(f, dict)
                ],
            )
        except pydantic.ValidationError as e:
            raise ParseError(f"Unexpected yt-dlp metadata: {e.error_count()} invalid field(s)")
