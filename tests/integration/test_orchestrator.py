import pytest
from unittest.mock import MagicMock, patch
from hlsladder.config.models import AppConfig, GeneralConfig
from hlsladder.domain.models import TranscodeResult
from hlsladder.domain.exceptions import EncodeError, ProbeError, PublishError
from hlsladder.domain.events import JobCompleted, JobFailed, FrameRateProbed
from hlsladder.infrastructure.ffmpeg import FFmpegAdapter
from hlsladder.pipeline.orchestrator import Orchestrator


def _fake_encode(fail=()):
    def encode(job, index, rendition, ctx):
        # write what ffmpeg would have produced
        job.playlist_path(rendition).write_text("#EXTM3U\n")
        (job.output_dir / f"{rendition.name}_000.ts").write_bytes(b"ts")
        result = TranscodeResult(index=index, rendition=rendition, playlist_path=job.playlist_path(rendition))
        if rendition.name in fail:
            result.error = EncodeError(rendition.name, "ffmpeg exited with code 1", returncode=1)
        return result
    return encode


@pytest.fixture
def source(tmp_path):
    f = tmp_path / "in.mp4"
    f.write_bytes(b"video")
    return f


@pytest.fixture
def output_dir(tmp_path):
    out = tmp_path / "output"
    out.mkdir()
    return out


def _orchestrator(bus, fail=(), publisher=None, fps=30):
    ffprobe = MagicMock()
    ffprobe.probe_frame_rate.return_value = fps
    ffmpeg = MagicMock(spec=FFmpegAdapter)
    ffmpeg.encode.side_effect = _fake_encode(fail)
    config = AppConfig(general=GeneralConfig(threads=2))
    return Orchestrator(config=config, event_bus=bus, ffprobe_adapter=ffprobe,
                        ffmpeg_adapter=ffmpeg, publisher=publisher)


def test_full_run_writes_master_playlist(bus, source, output_dir, record_events):
    completed = record_events(JobCompleted, FrameRateProbed)
    orchestrator = _orchestrator(bus, fps=25)

    report = orchestrator.run(source, output_dir)

    assert report.job.gop_size == 100
    assert [r.ok for r in report.results] == [True, True]
    assert report.manifest_path == output_dir / "playlist.m3u8"
    lines = report.manifest_path.read_text().splitlines()
    assert lines == [
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        "#EXT-X-STREAM-INF:BANDWIDTH=16128000,RESOLUTION=1920x1080",
        "1080p.m3u8",
        "#EXT-X-STREAM-INF:BANDWIDTH=6128000,RESOLUTION=1280x720",
        "720p.m3u8",
    ]
    assert report.uploaded_keys == []
    assert orchestrator.ffprobe_adapter.probe_frame_rate.call_count == 1
    assert [type(e).__name__ for e in completed] == ["FrameRateProbed", "JobCompleted"]


def test_one_rendition_failure_fails_job_without_manifest(bus, source, output_dir, record_events):
    failed = record_events(JobFailed)
    publisher = MagicMock()
    orchestrator = _orchestrator(bus, fail={"720p"}, publisher=publisher)

    with patch("hlsladder.pipeline.orchestrator.write_master_manifest") as mock_manifest:
        with pytest.raises(EncodeError) as exc_info:
            orchestrator.run(source, output_dir)

    assert exc_info.value.rendition == "720p"
    assert not mock_manifest.called
    assert not publisher.called
    assert orchestrator.ffmpeg_adapter.encode.call_count == 2
    assert len(failed) == 1
    assert failed[0].stage == "encode"
    assert len(failed[0].results) == 2
    assert [r.ok for r in failed[0].results] == [True, False]
    # partial output stays on disk
    assert (output_dir / "1080p.m3u8").exists()


def test_both_fail_reports_first_in_ladder_order(bus, source, output_dir):
    orchestrator = _orchestrator(bus, fail={"1080p", "720p"})

    with pytest.raises(EncodeError) as exc_info:
        orchestrator.run(source, output_dir)

    assert exc_info.value.rendition == "1080p"
    assert not (output_dir / "playlist.m3u8").exists()


def test_probe_failure_aborts_before_encoding(bus, source, output_dir, record_events):
    failed = record_events(JobFailed)
    orchestrator = _orchestrator(bus)
    orchestrator.ffprobe_adapter.probe_frame_rate.side_effect = ProbeError(source, "exit 1")

    with pytest.raises(ProbeError):
        orchestrator.run(source, output_dir)

    assert not orchestrator.ffmpeg_adapter.encode.called
    assert failed[0].stage == "probe"


def test_publishes_artifact_tree(bus, source, output_dir):
    received = {}

    def publish(key, body):
        received[key] = body.read()

    report = _orchestrator(bus, publisher=publish).run(source, output_dir)

    assert sorted(received) == sorted([
        "1080p.m3u8", "1080p_000.ts", "720p.m3u8", "720p_000.ts", "playlist.m3u8",
    ])
    assert received["playlist.m3u8"].startswith(b"#EXTM3U")
    assert sorted(report.uploaded_keys) == sorted(received)


def test_publish_failure_surfaces_path(bus, source, output_dir, record_events):
    failed = record_events(JobFailed)
    publisher = MagicMock(side_effect=[None, ConnectionError("reset")])

    with pytest.raises(PublishError) as exc_info:
        _orchestrator(bus, publisher=publisher).run(source, output_dir)

    assert exc_info.value.relative_path == "1080p_000.ts"
    assert failed[0].stage == "publish"
