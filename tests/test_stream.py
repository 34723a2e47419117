import os

import pytest

from ytdl_server.models.internal import JobMode
from ytdl_server.services.jobs import JobRunner
from ytdl_server.services.stream import ArtifactStreamer

from conftest import FakeExecutor

URL = "https://www.youtube.com/watch?v=abc123"


@pytest.fixture
def runner(settings, output_dir):
    output_dir.mkdir(parents=True, exist_ok=True)
    return JobRunner(settings, executor=FakeExecutor(title='Clip: "one"', ext="webm"))


@pytest.mark.asyncio
async def test_consumed_stream_deletes_file(runner, output_dir):
    result = await runner.run(URL, JobMode.DOWNLOAD_BINARY)
    gen, headers = ArtifactStreamer.open(result, runner)

    body = b"".join([chunk async for chunk in gen])

    assert body == runner.executor.content
    assert headers["Content-Disposition"] == 'attachment; filename="Clip- one.webm"'
    assert headers["Content-Length"] == str(len(body))
    assert os.listdir(output_dir) == []


@pytest.mark.asyncio
async def test_unstarted_streams_leave_no_registry_entries(runner, output_dir):
    for _ in range(3):
        result = await runner.run(URL, JobMode.DOWNLOAD_BINARY)
        gen, _headers = ArtifactStreamer.open(result, runner)
        await gen.aclose()

    assert runner.registry.active_jobs() == 0
    # Files are left for the retention sweep
    assert len(os.listdir(output_dir)) == 3
