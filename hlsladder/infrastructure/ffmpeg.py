import subprocess
import re
import time
from collections import deque
from typing import List, TYPE_CHECKING
from hlsladder.domain.models import RenditionSpec, TranscodeJob, TranscodeResult
from hlsladder.domain.params import derive_encode_parameters
from hlsladder.domain.exceptions import EncodeError
from hlsladder.domain.events import RenditionProgress

if TYPE_CHECKING:
    from hlsladder.pipeline.context import JobContext

# Lines of encoder output kept for error reports
OUTPUT_TAIL_LINES = 20

_TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+\.\d+)")


class FFmpegAdapter:
    """Wrapper around ffmpeg producing one HLS rendition per invocation."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def _build_command(self, job: TranscodeJob, rendition: RenditionSpec) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        params = derive_encode_parameters(rendition.video_bitrate_kbps, job.frame_rate, job.segment_seconds)
        enc = job.encoder
        cmd = [
            self.binary,
            "-y", # Overwrite output files
            "-i", str(job.input_path),
        ]

        # Video: fixed GOP with scene-cut keyframes disabled so every segment starts on a keyframe
        cmd.extend([
            "-c:v", enc.video_codec,
            "-preset", enc.preset,
            "-crf", str(enc.crf),
            "-profile:v", enc.profile,
            "-level:v", rendition.level,
            "-s", rendition.resolution,
            "-b:v", f"{rendition.video_bitrate_kbps}k",
            "-maxrate", f"{params.maxrate_kbps}k",
            "-bufsize", f"{params.bufsize_kbps}k",
        ])

        cmd.extend([
            "-c:a", enc.audio_codec,
            "-b:a", f"{rendition.audio_bitrate_kbps}k",
            "-ac", str(enc.audio_channels),
        ])

        cmd.extend([
            "-g", str(params.gop_size),
            "-keyint_min", str(params.gop_size),
            "-sc_threshold", "0",
        ])

        # HLS muxer
        cmd.extend([
            "-hls_time", str(job.segment_seconds),
            "-hls_list_size", "0",
            "-hls_flags", "independent_segments",
            "-hls_segment_filename", str(job.segment_template(rendition)),
        ])

        cmd.append(str(job.playlist_path(rendition)))
        return cmd

    def encode(self, job: TranscodeJob, index: int, rendition: RenditionSpec, ctx: "JobContext") -> TranscodeResult:
        """Runs one encoder invocation; failures are returned, not raised."""
        result = TranscodeResult(index=index, rendition=rendition, playlist_path=job.playlist_path(rendition))

        if ctx.cancelled:
            result.error = EncodeError(rendition.name, "cancelled before start")
            return result

        cmd = self._build_command(job, rendition)
        ctx.logger.debug(f"FFMPEG_START: {rendition.name} {' '.join(cmd)}")
        start_time = time.monotonic()

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1
            )
        except OSError as e:
            result.error = EncodeError(rendition.name, str(e))
            return result

        tail = deque(maxlen=OUTPUT_TAIL_LINES)
        cancelled = False
        drained = False
        try:
            for line in process.stdout:
                if ctx.cancelled:
                    cancelled = True
                    process.terminate()
                    break
                line = line.rstrip()
                if line:
                    tail.append(line)
                match = _TIME_RE.search(line)
                if match:
                    h, m, s = match.groups()
                    seconds = int(h) * 3600 + int(m) * 60 + float(s)
                    ctx.publish(RenditionProgress(job_id=ctx.job_id, index=index, rendition=rendition,
                                                  encoded_seconds=seconds))
            drained = True
        finally:
            if not drained:
                process.kill()
            process.wait()
        elapsed = time.monotonic() - start_time
        result.duration_seconds = elapsed

        if cancelled:
            result.error = EncodeError(rendition.name, "cancelled", returncode=process.returncode,
                                       output_tail=tail)
        elif process.returncode != 0:
            result.error = EncodeError(rendition.name, f"ffmpeg exited with code {process.returncode}",
                                       returncode=process.returncode, output_tail=tail)
            ctx.logger.debug(f"FFMPEG_END: {rendition.name} status=failed code={process.returncode} elapsed={elapsed:.2f}s")
        else:
            ctx.logger.debug(f"FFMPEG_END: {rendition.name} status=completed elapsed={elapsed:.2f}s")
        return result
