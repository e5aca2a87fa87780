import pytest
from hlsladder.infrastructure.event_bus import EventBus
from hlsladder.pipeline.context import JobContext
from hlsladder.domain.models import RenditionSpec, TranscodeJob

@pytest.fixture
def bus():
    return EventBus()

@pytest.fixture
def ctx(bus):
    return JobContext.create(bus, job_id="test")

@pytest.fixture
def ladder():
    return [
        RenditionSpec(name="1080p", resolution="1920x1080", video_bitrate="16000k", audio_bitrate="128k", level="4.2"),
        RenditionSpec(name="720p", resolution="1280x720", video_bitrate="6000k", audio_bitrate="96k", level="3.1"),
    ]

@pytest.fixture
def job(tmp_path, ladder):
    input_file = tmp_path / "input.mp4"
    input_file.write_bytes(b"fake video")
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return TranscodeJob(
        input_path=input_file,
        output_dir=output_dir,
        frame_rate=30,
        segment_seconds=4,
        renditions=ladder,
    )

@pytest.fixture
def record_events(bus):
    """Collects every event of the given types published on the bus."""
    def _record(*event_types):
        seen = []
        for event_type in event_types:
            bus.subscribe(event_type, seen.append)
        return seen
    return _record
