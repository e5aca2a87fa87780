import io
import pytest
from unittest.mock import MagicMock, patch
from hlsladder.infrastructure.ffmpeg import FFmpegAdapter, OUTPUT_TAIL_LINES
from hlsladder.domain.events import RenditionProgress

def _value_after(cmd, flag):
    return cmd[cmd.index(flag) + 1]

def test_ffmpeg_command_generation(job, ladder):
    adapter = FFmpegAdapter()
    cmd = adapter._build_command(job, ladder[1])

    assert cmd[0] == "ffmpeg"
    assert _value_after(cmd, "-i") == str(job.input_path)
    assert _value_after(cmd, "-s") == "1280x720"
    assert _value_after(cmd, "-b:v") == "6000k"
    assert _value_after(cmd, "-maxrate") == "7200k"
    assert _value_after(cmd, "-bufsize") == "12000k"
    assert _value_after(cmd, "-b:a") == "96k"
    assert _value_after(cmd, "-level:v") == "3.1"
    assert _value_after(cmd, "-c:v") == "libx264"
    assert _value_after(cmd, "-preset") == "slow"
    assert _value_after(cmd, "-crf") == "12"

def test_ffmpeg_fixed_gop_and_hls_flags(job, ladder):
    cmd = FFmpegAdapter()._build_command(job, ladder[0])

    assert _value_after(cmd, "-g") == "120"
    assert _value_after(cmd, "-keyint_min") == "120"
    assert _value_after(cmd, "-sc_threshold") == "0"
    assert _value_after(cmd, "-hls_time") == "4"
    assert _value_after(cmd, "-hls_list_size") == "0"
    assert _value_after(cmd, "-hls_flags") == "independent_segments"
    assert _value_after(cmd, "-hls_segment_filename") == str(job.output_dir / "1080p_%03d.ts")
    assert cmd[-1] == str(job.output_dir / "1080p.m3u8")

def test_ffmpeg_encode_success(job, ladder, ctx, record_events):
    progress = record_events(RenditionProgress)

    with patch("subprocess.Popen") as mock_popen:
        process_instance = mock_popen.return_value
        process_instance.stdout = ["frame= 100 fps=10.0 q=45.0 size= 100kB time=00:01:05.50 bitrate= 100.0kbits/s speed=1.0x"]
        process_instance.wait.return_value = 0
        process_instance.returncode = 0

        result = FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    assert result.ok
    assert result.index == 0
    assert result.playlist_path == job.output_dir / "1080p.m3u8"
    assert result.duration_seconds is not None
    assert len(progress) == 1
    assert progress[0].encoded_seconds == pytest.approx(65.5)

def test_ffmpeg_encode_failure_keeps_output_tail(job, ladder, ctx):
    lines = [f"line {i}" for i in range(OUTPUT_TAIL_LINES + 5)] + ["Error while opening encoder"]

    with patch("subprocess.Popen") as mock_popen:
        process_instance = mock_popen.return_value
        process_instance.stdout = lines
        process_instance.wait.return_value = 1
        process_instance.returncode = 1

        result = FFmpegAdapter().encode(job, 1, ladder[1], ctx)

    assert not result.ok
    assert result.error.rendition == "720p"
    assert result.error.returncode == 1
    assert "ffmpeg exited with code 1" in str(result.error)
    assert len(result.error.output_tail) == OUTPUT_TAIL_LINES
    assert result.error.output_tail[-1] == "Error while opening encoder"

def test_ffmpeg_encode_missing_binary(job, ladder, ctx):
    with patch("subprocess.Popen", side_effect=FileNotFoundError("ffmpeg")):
        result = FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    assert not result.ok
    assert result.error.returncode is None

def test_ffmpeg_encode_skipped_when_cancelled(job, ladder, ctx):
    ctx.cancel.set()
    with patch("subprocess.Popen") as mock_popen:
        result = FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    assert not mock_popen.called
    assert "cancelled" in str(result.error)

def test_ffmpeg_encode_terminates_on_cancel(job, ladder, ctx):
    def output():
        yield "frame=1 time=00:00:01.00"
        ctx.cancel.set()
        yield "frame=2 time=00:00:02.00"
        yield "frame=3 time=00:00:03.00"

    with patch("subprocess.Popen") as mock_popen:
        process_instance = mock_popen.return_value
        process_instance.stdout = output()
        process_instance.returncode = -15

        result = FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    process_instance.terminate.assert_called_once()
    assert "cancelled" in str(result.error)

def test_ffmpeg_encode_tolerates_undecodable_output(job, ladder, ctx):
    raw = b"  title           : \xff\xfe caf\xe9\nframe= 10 time=00:00:02.00 bitrate=1.0kbits/s\n"

    def fake_popen(cmd, **kwargs):
        process = MagicMock()
        process.stdout = io.TextIOWrapper(io.BytesIO(raw), encoding=kwargs.get("encoding"),
                                          errors=kwargs.get("errors", "strict"))
        process.returncode = 0
        return process

    with patch("subprocess.Popen", side_effect=fake_popen) as mock_popen:
        result = FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    assert mock_popen.call_args.kwargs["errors"] == "replace"
    assert result.ok

def test_ffmpeg_encode_reaps_process_when_reading_fails(job, ladder, ctx):
    def output():
        yield "frame=1 time=00:00:01.00"
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    with patch("subprocess.Popen") as mock_popen:
        process_instance = mock_popen.return_value
        process_instance.stdout = output()

        with pytest.raises(UnicodeDecodeError):
            FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    process_instance.kill.assert_called_once()
    process_instance.wait.assert_called_once()

def test_ffmpeg_encode_does_not_kill_after_clean_exit(job, ladder, ctx):
    with patch("subprocess.Popen") as mock_popen:
        process_instance = mock_popen.return_value
        process_instance.stdout = ["frame=1 time=00:00:01.00"]
        process_instance.returncode = 0

        FFmpegAdapter().encode(job, 0, ladder[0], ctx)

    process_instance.kill.assert_not_called()
    process_instance.wait.assert_called_once()
