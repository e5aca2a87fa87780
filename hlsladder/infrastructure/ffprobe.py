import re
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING
from hlsladder.domain.exceptions import ProbeError

if TYPE_CHECKING:
    from hlsladder.pipeline.context import JobContext

DEFAULT_FRAME_RATE = 30

_RATE_RE = re.compile(r"([+-]?\d+)/([+-]?\d+)", re.ASCII)


def parse_frame_rate(text: str) -> int:
    """Parses ffprobe's rational frame rate ("30000/1001") into whole fps.

    Malformed text falls back to DEFAULT_FRAME_RATE; a zero denominator is
    treated as 1. Division truncates toward zero.
    """
    match = _RATE_RE.fullmatch(text.strip())
    if not match:
        return DEFAULT_FRAME_RATE
    numerator, denominator = int(match.group(1)), int(match.group(2))
    if denominator == 0:
        denominator = 1
    fps = abs(numerator) // abs(denominator)
    return -fps if (numerator < 0) != (denominator < 0) else fps


class FFprobeAdapter:
    """Wrapper around ffprobe to measure the source frame rate."""

    def __init__(self, binary: str = "ffprobe"):
        self.binary = binary

    def _build_command(self, file_path: Path):
        return [
            self.binary,
            "-v", "0",
            "-of", "default=noprint_wrappers=1:nokey=1",
            "-select_streams", "v:0",
            "-show_entries", "stream=avg_frame_rate",
            str(file_path)
        ]

    def probe_frame_rate(self, file_path: Path, ctx: "JobContext") -> int:
        """Runs ffprobe once and returns the first video stream's fps."""
        cmd = self._build_command(file_path)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ProbeError(file_path, str(e)) from e
        if result.returncode != 0:
            raise ProbeError(file_path, f"ffprobe exited with code {result.returncode}: {result.stderr.strip()}")

        lines = result.stdout.strip().splitlines()
        raw = lines[0] if lines else ""
        fps = parse_frame_rate(raw)
        if fps <= 0:
            ctx.logger.warning(f"ffprobe reported unusable frame rate {raw!r}, using {DEFAULT_FRAME_RATE}")
            fps = DEFAULT_FRAME_RATE
        ctx.logger.debug(f"Frame rate for {file_path.name}: {raw!r} -> {fps}fps")
        return fps
