import asyncio
import json
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ytdl_server.config.settings import Settings
from ytdl_server.main import create_app
from ytdl_server.services.ytdlp import CompletedProcess


class FakeExecutor:
    """
    Stands in for the yt-dlp subprocess.
    Records every argv and, when an -o template is present, writes the artifact
    the way yt-dlp would.
    """

    def __init__(
        self,
        title: str = "My Title",
        ext: str = "mp4",
        content: bytes = b"\x00\x01fake-media" * 100,
        returncode: int = 0,
        stdout: bytes = b"",
        stderr: bytes = b"",
        create_file: bool = True,
        extra_files: Optional[List[str]] = None,
        timeout: bool = False
    ):
        self.title = title
        self.ext = ext
        self.content = content
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.create_file = create_file
        self.extra_files = extra_files or []
        self.timeout = timeout
        self.calls: List[List[str]] = []
        self.timeouts: List[float] = []

    async def run(self, cmd, timeout, label="yt-dlp"):
        self.calls.append(list(cmd))
        self.timeouts.append(timeout)
        if self.timeout:
            raise asyncio.TimeoutError()

        if self.create_file and "-o" in cmd:
            template = cmd[cmd.index("-o") + 1]
            path = template.replace("%(title)s", self.title).replace("%(ext)s", self.ext)
            with open(path, "wb") as f:
                f.write(self.content)
            for suffix in self.extra_files:
                with open(template.replace("%(title)s.%(ext)s", suffix), "wb") as f:
                    f.write(b"partial")

        return CompletedProcess(returncode=self.returncode, stdout=self.stdout, stderr=self.stderr)


SAMPLE_INFO = {
    "id": "abc123",
    "title": "Sample Video",
    "duration": 212,
    "thumbnail": "https://img.example.com/abc123.jpg",
    "uploader": "Sample Channel",
    "description": "A description",
    "view_count": 1000,
    "formats": [
        {"format_id": "140", "ext": "m4a", "quality": 3.0, "filesize": 3456789, "vcodec": "none"},
        {"format_id": "18", "ext": "mp4", "quality": 1.0, "filesize": None, "vcodec": "avc1"},
    ],
}


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "downloads"


@pytest.fixture
def settings(output_dir):
    return Settings(
        _env_file=None,
        host="localhost",
        port=3000,
        output_path=str(output_dir),
        server_url=None,
        cookies_from_browser=None,
        max_file_size=None,
        rate_limit=None,
        download_timeout_ms=None,
        file_cleanup_interval=0,
        file_max_age=None,
        log_rich=False,
    )


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def info_executor():
    return FakeExecutor(stdout=json.dumps(SAMPLE_INFO).encode(), create_file=False)


@pytest.fixture
def app(settings, fake_executor):
    return create_app(settings, executor=fake_executor)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
