import asyncio
import logging
import os
import secrets
import time
from typing import Dict, Optional

import aiofiles.os

from ytdl_server.config.settings import Settings
from ytdl_server.core.errors import (
    ArtifactNotFoundError,
    FilesystemError,
    JobTimeoutError,
    SubprocessError,
    ValidationError,
)
from ytdl_server.models.internal import DownloadJob, JobMode, JobResult
from ytdl_server.services.info import VideoInfoService
from ytdl_server.services.ytdlp import CompletedProcess, SubprocessExecutor, YTDLPCommandBuilder
from ytdl_server.utils.filename import strip_token_prefix
from ytdl_server.utils.urls import build_download_url, safe_url_for_log

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500
TITLE_PLACEHOLDER = "%(title)s.%(ext)s"
# yt-dlp leaves these behind while a download or merge is in progress
PARTIAL_SUFFIXES = (".part", ".ytdl", ".temp")


def new_token(now_ms: Optional[int] = None) -> str:
    """Correlation token: millisecond timestamp plus random suffix, never containing '_'"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}-{secrets.token_hex(4)}"


class JobRegistry:
    """In-memory map from correlation token to job and resolved artifact"""

    def __init__(self):
        self._jobs: Dict[str, DownloadJob] = {}
        self._artifacts: Dict[str, str] = {}

    def register(self, job: DownloadJob) -> None:
        self._jobs[job.token] = job

    def resolve(self, token: str, path: str) -> None:
        if token not in self._jobs:
            raise KeyError(token)
        self._artifacts[token] = path

    def artifact_for(self, token: str) -> Optional[str]:
        return self._artifacts.get(token)

    def release(self, token: str) -> None:
        self._jobs.pop(token, None)
        self._artifacts.pop(token, None)

    def active_jobs(self) -> int:
        return len(self._jobs)

    def __contains__(self, token: str) -> bool:
        return token in self._jobs


class JobRunner:
    """
    Turns a request into one yt-dlp invocation and resolves its output.

    Download modes write '{token}_{title}.{ext}' into the output directory; the
    token prefix is the only link between a job and the file it produced.
    """

    def __init__(
        self,
        settings: Settings,
        executor: Optional[SubprocessExecutor] = None,
        registry: Optional[JobRegistry] = None
    ):
        self.settings = settings
        self.output_dir = os.path.abspath(settings.output_path)
        self.executor = executor or SubprocessExecutor()
        self.registry = registry or JobRegistry()
        self.commands = YTDLPCommandBuilder(settings)

    def create_job(self, url: Optional[str], mode: JobMode, format_str: Optional[str] = None) -> DownloadJob:
        if not url or not url.strip():
            raise ValidationError("URL is required")

        created_at = int(time.time() * 1000)
        token = new_token(created_at)
        return DownloadJob(
            url=url.strip(),
            mode=mode,
            format=format_str or self.settings.default_format,
            token=token,
            created_at=created_at,
            output_template=os.path.join(self.output_dir, f"{token}_{TITLE_PLACEHOLDER}")
        )

    async def run(self, url: Optional[str], mode: JobMode, format_str: Optional[str] = None) -> JobResult:
        """
        Run one job to completion.

        A download job is registered only between spawn and artifact
        resolution. After that the JobResult carries the path, so a stream
        that is never consumed leaves nothing behind but the file.
        """
        job = self.create_job(url, mode, format_str)

        if mode == JobMode.VIDEO_INFO:
            return await self._fetch_info(job)

        self.registry.register(job)
        try:
            return await self._download(job)
        finally:
            self.registry.release(job.token)

    async def _fetch_info(self, job: DownloadJob) -> JobResult:
        cmd = self.commands.build_info_command(job.url)
        logger.info(f"Fetching video info for {safe_url_for_log(job.url)}")
        result = await self._execute(job, cmd, self.settings.info_timeout)
        info = VideoInfoService.parse(result.stdout)
        return JobResult(job=job, info=info)

    async def _download(self, job: DownloadJob) -> JobResult:
        if job.mode.is_audio:
            cmd = self.commands.build_audio_command(job.url, job.output_template)
        else:
            cmd = self.commands.build_download_command(job.url, job.output_template, job.format)

        logger.info(f"Downloading ({job.mode.value}) {safe_url_for_log(job.url)} as job {job.token}")
        await self._execute(job, cmd, self.settings.download_timeout)

        path = await self.locate_artifact(job.token)
        self.registry.resolve(job.token, path)

        try:
            stat = await aiofiles.os.stat(path)
        except OSError as e:
            raise FilesystemError(f"Could not stat downloaded file: {e.strerror or e}")

        raw_name = os.path.basename(path)
        result = JobResult(
            job=job,
            artifact_path=path,
            file_name=strip_token_prefix(raw_name, job.token),
            file_size=stat.st_size,
        )
        if not job.mode.is_binary:
            result.download_url = build_download_url(self.settings.public_base_url, raw_name)

        logger.info(f"Download completed: {raw_name} ({stat.st_size} bytes)")
        return result

    async def _execute(self, job: DownloadJob, cmd, timeout: float) -> CompletedProcess:
        try:
            result = await self.executor.run(cmd, timeout=timeout, label=f"yt-dlp job {job.token}")
        except asyncio.TimeoutError:
            raise JobTimeoutError(f"yt-dlp timed out after {timeout:.0f}s")
        except OSError as e:
            raise SubprocessError(f"Failed to start yt-dlp: {e}")

        stderr = result.stderr.decode(errors="replace").strip()
        if result.returncode != 0:
            tail = stderr[-STDERR_TAIL_CHARS:] or "no error output"
            raise SubprocessError(
                f"yt-dlp exited with code {result.returncode}: {tail}",
                returncode=result.returncode,
                stderr=stderr
            )
        if stderr:
            logger.warning(f"yt-dlp warnings for job {job.token}: {stderr[-STDERR_TAIL_CHARS:]}")
        return result

    async def locate_artifact(self, token: str) -> str:
        """Find the finished file carrying this token; first in name order if several"""
        try:
            entries = await aiofiles.os.listdir(self.output_dir)
        except OSError as e:
            raise FilesystemError(f"Could not list output directory: {e.strerror or e}")

        prefix = f"{token}_"
        matches = sorted(
            name for name in entries
            if name.startswith(prefix) and not name.endswith(PARTIAL_SUFFIXES)
        )
        if not matches:
            raise ArtifactNotFoundError("Downloaded file not found")
        if len(matches) > 1:
            logger.warning(f"Job {token} produced {len(matches)} files, using {matches[0]}")
        return os.path.join(self.output_dir, matches[0])

    async def discard(self, result: JobResult) -> bool:
        """Delete a streamed artifact. Failures are logged, never raised."""
        if not result.artifact_path:
            return False
        try:
            await aiofiles.os.remove(result.artifact_path)
            logger.info(f"Deleted {os.path.basename(result.artifact_path)} after streaming")
            return True
        except OSError as e:
            logger.warning(f"Could not delete file {result.artifact_path}: {e}")
            return False
