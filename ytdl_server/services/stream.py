import logging
from typing import AsyncIterator, Dict, Tuple
import aiofiles
from ytdl_server.models.internal import JobResult
from ytdl_server.services.jobs import JobRunner
from ytdl_server.utils.filename import sanitize_filename

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

class ArtifactStreamer:
    """Stream a downloaded file to the client, then delete it"""

    @staticmethod
    def open(result: JobResult, runner: JobRunner) -> Tuple[AsyncIterator[bytes], Dict[str, str]]:
        """
        Returns (generator, headers).
        Once iteration has started the file is removed however the stream ends.
        """
        path = result.artifact_path

        async def generate():
            try:
                async with aiofiles.open(path, 'rb') as f:
                    while True:
                        chunk = await f.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        yield chunk
            except OSError as e:
                logger.error(f"Streaming error for {path}: {e}")
            finally:
                await runner.discard(result)

        safe_filename = sanitize_filename(result.file_name or "")
        headers = {
            'Content-Disposition': f'attachment; filename="{safe_filename}"',
            'Content-Length': str(result.file_size),
            'X-Content-Type-Options': 'nosniff',
            'Cache-Control': 'no-cache',
        }

        return generate(), headers
