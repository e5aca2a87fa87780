import re
from pydantic import BaseModel, ConfigDict

DEFAULT_BITRATE_KBPS = 1000

_BITRATE_RE = re.compile(r"(\d+)k", re.ASCII)


class EncodeParameters(BaseModel):
    """Rate-control and keyframe settings derived for one rendition."""
    model_config = ConfigDict(frozen=True)

    maxrate_kbps: int
    bufsize_kbps: int
    gop_size: int


def parse_bitrate_kbps(value: str) -> int:
    """Parses a ladder bitrate such as "6000k" into kbps.

    Anything that is not exactly ASCII digits followed by a lowercase "k"
    (surrounding whitespace included) degrades to DEFAULT_BITRATE_KBPS
    instead of failing the job.
    """
    match = _BITRATE_RE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        return DEFAULT_BITRATE_KBPS
    return int(match.group(1))


def derive_encode_parameters(bitrate_kbps: int, frame_rate: int, segment_seconds: int) -> EncodeParameters:
    # ceil(bitrate * 1.2) without float rounding
    maxrate = -(-bitrate_kbps * 6 // 5)
    return EncodeParameters(
        maxrate_kbps=maxrate,
        bufsize_kbps=bitrate_kbps * 2,
        gop_size=frame_rate * segment_seconds,
    )
