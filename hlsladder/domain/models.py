import re
from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from hlsladder.domain.exceptions import EncodeError
from hlsladder.domain.params import parse_bitrate_kbps

_RESOLUTION_RE = re.compile(r"\d+x\d+")


class RenditionStatus(str, Enum):
    PENDING = "PENDING"
    ENCODING = "ENCODING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RenditionSpec(BaseModel):
    """One row of the rendition ladder."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    resolution: str
    video_bitrate_kbps: int = Field(alias="video_bitrate")
    audio_bitrate_kbps: int = Field(alias="audio_bitrate")
    level: str = "4.0"

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v: str) -> str:
        if not _RESOLUTION_RE.fullmatch(v):
            raise ValueError(f"Invalid resolution {v!r}. Must look like 1920x1080.")
        return v

    @field_validator("video_bitrate_kbps", "audio_bitrate_kbps", mode="before")
    @classmethod
    def coerce_bitrate(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return v
        return parse_bitrate_kbps(str(v))

    @field_validator("level", mode="before")
    @classmethod
    def coerce_level(cls, v):
        # YAML reads an unquoted 4.2 as a float
        return str(v)

    @property
    def playlist_name(self) -> str:
        return f"{self.name}.m3u8"

    @property
    def segment_pattern(self) -> str:
        return f"{self.name}_%03d.ts"


class EncoderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    preset: str = "slow"
    crf: int = 12
    video_codec: str = "libx264"
    profile: str = "high"
    audio_codec: str = "aac"
    audio_channels: int = 2


class TranscodeJob(BaseModel):
    """Everything one packaging run needs; read-only once built."""
    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_dir: Path
    frame_rate: int = Field(gt=0)
    segment_seconds: int = Field(gt=0)
    renditions: List[RenditionSpec] = Field(min_length=1)
    encoder: EncoderSettings = Field(default_factory=EncoderSettings)

    @property
    def gop_size(self) -> int:
        return self.frame_rate * self.segment_seconds

    def playlist_path(self, rendition: RenditionSpec) -> Path:
        return self.output_dir / rendition.playlist_name

    def segment_template(self, rendition: RenditionSpec) -> Path:
        return self.output_dir / rendition.segment_pattern


class TranscodeResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int
    rendition: RenditionSpec
    playlist_path: Path
    error: Optional[EncodeError] = None
    duration_seconds: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MasterManifestEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    bandwidth_bps: int
    resolution: str
    playlist_name: str

    @classmethod
    def from_result(cls, result: TranscodeResult) -> "MasterManifestEntry":
        # 128 kbps on top of the video rate covers audio and container overhead
        return cls(
            bandwidth_bps=(result.rendition.video_bitrate_kbps + 128) * 1000,
            resolution=result.rendition.resolution,
            playlist_name=result.playlist_path.name,
        )


class ArtifactUploadEntry(BaseModel):
    """A file found under the output directory; relative_path uses forward slashes."""
    relative_path: str
    absolute_path: Path
