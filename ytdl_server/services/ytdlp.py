import asyncio
import logging
from typing import List, NamedTuple, Optional

from ytdl_server.config.settings import Settings

logger = logging.getLogger(__name__)

YTDLP_BINARY = "yt-dlp"

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

AUDIO_EXTRACTOR_ARGS = "youtube:player_client=android"

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Runs one yt-dlp process per call and always reaps it"""

    async def run(self, cmd: List[str], timeout: float, label: str = "yt-dlp") -> CompletedProcess:
        """
        Wait for cmd to exit, collecting stdout and stderr.

        A process still running after `timeout` seconds is killed and reaped
        before asyncio.TimeoutError reaches the caller. Cancellation does the same.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL
        )
        logger.debug(f"Spawned {label} as pid {process.pid}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except BaseException as e:
            if process.returncode is None:
                process.kill()
                await process.wait()
                reason = "timeout" if isinstance(e, asyncio.TimeoutError) else type(e).__name__
                logger.warning(
                    f"Killed {label} (pid {process.pid}) after {loop.time() - started:.1f}s: {reason}"
                )
            raise

        logger.debug(f"{label} exited with code {process.returncode} in {loop.time() - started:.1f}s")
        return CompletedProcess(returncode=process.returncode, stdout=stdout, stderr=stderr)

class YTDLPCommandBuilder:
    """Build yt-dlp argument lists from the active settings"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _cookie_args(self) -> List[str]:
        if self.settings.cookies_from_browser:
            return ['--cookies-from-browser', self.settings.cookies_from_browser]
        return []

    def _limit_args(self) -> List[str]:
        args = []
        if self.settings.max_file_size:
            args.extend(['--max-filesize', self.settings.max_file_size])
        if self.settings.rate_limit:
            args.extend(['--limit-rate', self.settings.rate_limit])
        return args

    def build_info_command(self, url: str) -> List[str]:
        """Build command for fetching video info"""
        cmd = [
            YTDLP_BINARY,
            '--dump-json',
            '--no-playlist',
            '--user-agent', UA,
        ]
        cmd.extend(self._cookie_args())
        cmd.append(url)
        return cmd

    def build_download_command(
        self,
        url: str,
        output_template: str,
        format_str: Optional[str] = None
    ) -> List[str]:
        """Build command for downloading a video to output_template"""
        cmd = [YTDLP_BINARY, '--user-agent', UA]
        cmd.extend(self._cookie_args())
        cmd.extend([
            '-o', output_template,
            '--no-playlist',
        ])
        cmd.extend(self._limit_args())
        cmd.extend(['-f', format_str or self.settings.default_format])
        cmd.append(url)
        return cmd

    def build_audio_command(self, url: str, output_template: str) -> List[str]:
        """Build command for extracting mp3 audio to output_template"""
        cmd = [YTDLP_BINARY]
        cmd.extend(self._cookie_args())
        cmd.extend([
            '--extractor-args', AUDIO_EXTRACTOR_ARGS,
            '-o', output_template,
            '--no-playlist',
            '-x',
            '--audio-format', 'mp3',
        ])
        cmd.extend(self._limit_args())
        cmd.append(url)
        return cmd
