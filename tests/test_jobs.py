import json
import os

import pytest

from ytdl_server.core.errors import (
    ArtifactNotFoundError,
    JobTimeoutError,
    ParseError,
    SubprocessError,
    ValidationError,
)
from ytdl_server.models.internal import JobMode
from ytdl_server.services.jobs import JobRunner, new_token

from conftest import SAMPLE_INFO, FakeExecutor

URL = "https://www.youtube.com/watch?v=abc123"


@pytest.fixture
def runner_for(settings, output_dir):
    output_dir.mkdir(parents=True, exist_ok=True)

    def build(executor):
        return JobRunner(settings, executor=executor)
    return build


def test_tokens_are_unique_and_underscore_free():
    tokens = {new_token(1700000000000) for _ in range(1000)}
    assert len(tokens) == 1000
    assert all("_" not in t and t.startswith("1700000000000-") for t in tokens)


def test_create_job_embeds_token_in_template(runner_for):
    runner = runner_for(FakeExecutor())
    job = runner.create_job(URL, JobMode.DOWNLOAD_BINARY)
    assert job.format == "best"
    assert os.path.basename(job.output_template) == f"{job.token}_%(title)s.%(ext)s"
    assert os.path.isabs(job.output_template)


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [None, "", "   "])
async def test_missing_url_never_spawns(runner_for, url):
    executor = FakeExecutor()
    runner = runner_for(executor)
    with pytest.raises(ValidationError) as exc:
        await runner.run(url, JobMode.DOWNLOAD_BINARY)
    assert exc.value.status_code == 400
    assert executor.calls == []


@pytest.mark.asyncio
async def test_video_info_projects_fields(runner_for, settings):
    executor = FakeExecutor(stdout=json.dumps(SAMPLE_INFO).encode(), create_file=False)
    result = await runner_for(executor).run(URL, JobMode.VIDEO_INFO)

    assert result.info.title == "Sample Video"
    assert result.info.duration == 212
    assert result.info.uploader == "Sample Channel"
    assert [f.model_dump() for f in result.info.formats] == [
        {"format_id": "140", "ext": "m4a", "quality": 3.0, "filesize": 3456789},
        {"format_id": "18", "ext": "mp4", "quality": 1.0, "filesize": None},
    ]
    assert executor.calls[0][1] == "--dump-json"
    assert executor.timeouts == [settings.info_timeout]


@pytest.mark.asyncio
@pytest.mark.parametrize("stdout", [b"", b"not json", b"[1, 2, 3]"])
async def test_video_info_malformed_output(runner_for, stdout):
    executor = FakeExecutor(stdout=stdout, create_file=False)
    with pytest.raises(ParseError):
        await runner_for(executor).run(URL, JobMode.VIDEO_INFO)


@pytest.mark.asyncio
async def test_nonzero_exit_raises_subprocess_error(runner_for):
    executor = FakeExecutor(returncode=1, stderr=b"ERROR: [youtube] abc123: Video unavailable", create_file=False)
    runner = runner_for(executor)
    with pytest.raises(SubprocessError) as exc:
        await runner.run(URL, JobMode.DOWNLOAD_URL_REF)
    assert "Video unavailable" in exc.value.message
    assert exc.value.returncode == 1
    assert runner.registry.active_jobs() == 0


@pytest.mark.asyncio
async def test_timeout_raises_job_timeout_error(runner_for, settings):
    executor = FakeExecutor(timeout=True)
    runner = runner_for(executor)
    with pytest.raises(JobTimeoutError):
        await runner.run(URL, JobMode.DOWNLOAD_BINARY)
    assert executor.timeouts == [settings.download_timeout]
    assert runner.registry.active_jobs() == 0


@pytest.mark.asyncio
async def test_configured_timeout_applies_to_both_modes(settings, output_dir):
    output_dir.mkdir(parents=True, exist_ok=True)
    custom = settings.model_copy(update={"download_timeout_ms": 12_000})
    executor = FakeExecutor(stdout=json.dumps(SAMPLE_INFO).encode())
    runner = JobRunner(custom, executor=executor)

    await runner.run(URL, JobMode.VIDEO_INFO)
    await runner.run(URL, JobMode.DOWNLOAD_URL_REF)

    assert executor.timeouts == [12.0, 12.0]


@pytest.mark.asyncio
async def test_success_without_file_raises_artifact_not_found(runner_for):
    runner = runner_for(FakeExecutor(create_file=False))
    with pytest.raises(ArtifactNotFoundError) as exc:
        await runner.run(URL, JobMode.DOWNLOAD_BINARY)
    assert exc.value.message == "Downloaded file not found"
    assert runner.registry.active_jobs() == 0


@pytest.mark.asyncio
async def test_url_mode_resolves_and_keeps_artifact(runner_for, output_dir):
    executor = FakeExecutor(title="My Title", ext="mp4")
    runner = runner_for(executor)

    result = await runner.run(URL, JobMode.DOWNLOAD_URL_REF)

    raw_name = f"{result.job.token}_My Title.mp4"
    assert result.file_name == "My Title.mp4"
    assert result.raw_file_name == raw_name
    assert result.file_size == len(executor.content)
    assert result.download_url == f"http://localhost:3000/downloads/{result.job.token}_My%20Title.mp4"
    assert os.listdir(output_dir) == [raw_name]
    assert runner.registry.active_jobs() == 0


@pytest.mark.asyncio
async def test_binary_mode_releases_job_and_keeps_file_until_discarded(runner_for, output_dir):
    runner = runner_for(FakeExecutor())

    result = await runner.run(URL, JobMode.DOWNLOAD_BINARY)

    assert result.job.token not in runner.registry
    assert runner.registry.active_jobs() == 0
    assert result.download_url is None
    assert os.listdir(output_dir) == [result.raw_file_name]

    assert await runner.discard(result) is True
    assert os.listdir(output_dir) == []


@pytest.mark.asyncio
async def test_job_is_registered_while_yt_dlp_runs(runner_for):
    seen = []

    class ObservingExecutor(FakeExecutor):
        async def run(self, cmd, timeout, label="yt-dlp"):
            seen.append(runner.registry.active_jobs())
            return await super().run(cmd, timeout, label)

    runner = runner_for(ObservingExecutor())
    await runner.run(URL, JobMode.DOWNLOAD_BINARY)

    assert seen == [1]
    assert runner.registry.active_jobs() == 0


@pytest.mark.asyncio
async def test_discard_of_missing_file_is_not_fatal(runner_for):
    runner = runner_for(FakeExecutor())
    result = await runner.run(URL, JobMode.DOWNLOAD_BINARY)
    os.remove(result.artifact_path)

    assert await runner.discard(result) is False


@pytest.mark.asyncio
async def test_partial_files_are_ignored_and_first_match_wins(runner_for):
    executor = FakeExecutor(title="B clip", ext="mp4", extra_files=["A clip.mp4.part", "A clip.ytdl", "C clip.webm"])
    runner = runner_for(executor)

    result = await runner.run(URL, JobMode.DOWNLOAD_URL_REF)

    assert result.file_name == "B clip.mp4"


@pytest.mark.asyncio
async def test_other_jobs_files_are_not_matched(runner_for, output_dir):
    (output_dir / "1699999999999-deadbeef_Someone else.mp4").write_bytes(b"other")
    runner = runner_for(FakeExecutor(create_file=False))

    with pytest.raises(ArtifactNotFoundError):
        await runner.run(URL, JobMode.DOWNLOAD_URL_REF)


@pytest.mark.asyncio
async def test_audio_mode_uses_audio_command(runner_for):
    executor = FakeExecutor(ext="mp3")
    result = await runner_for(executor).run(URL, JobMode.DOWNLOAD_AUDIO_URL_REF, "ignored")

    cmd = executor.calls[0]
    assert "-x" in cmd and "mp3" in cmd
    assert "-f" not in cmd
    assert result.file_name == "My Title.mp3"
    assert result.job.mode.media_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_stderr_on_success_is_only_a_warning(runner_for, caplog):
    executor = FakeExecutor(stderr=b"WARNING: something minor")
    result = await runner_for(executor).run(URL, JobMode.DOWNLOAD_URL_REF)
    assert result.file_name == "My Title.mp4"
    assert "something minor" in caplog.text
