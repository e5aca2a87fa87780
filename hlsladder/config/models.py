import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from hlsladder.domain.models import EncoderSettings, RenditionSpec

def default_ladder() -> List[RenditionSpec]:
    return [
        RenditionSpec(name="1080p", resolution="1920x1080", video_bitrate="16000k", audio_bitrate="128k", level="4.2"),
        RenditionSpec(name="720p", resolution="1280x720", video_bitrate="6000k", audio_bitrate="96k", level="3.1"),
    ]

class GeneralConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    threads: int = Field(default_factory=lambda: os.cpu_count() or 1, gt=0)
    output_dir: Path = Path("output")
    manifest_name: str = "playlist.m3u8"
    log_file: Optional[Path] = None
    debug: bool = False

class EncoderConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    preset: str = "slow"
    crf: int = Field(default=12, ge=0, le=51)
    segment_time: int = Field(default=4, gt=0)
    video_codec: str = "libx264"
    profile: str = "high"
    audio_codec: str = "aac"
    audio_channels: int = Field(default=2, gt=0)
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"

    def settings(self) -> EncoderSettings:
        return EncoderSettings(
            preset=self.preset,
            crf=self.crf,
            video_codec=self.video_codec,
            profile=self.profile,
            audio_codec=self.audio_codec,
            audio_channels=self.audio_channels,
        )

class StorageConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    prefix: str = ""
    env_file: Path = Path(".env")

    @property
    def enabled(self) -> bool:
        return bool(self.bucket)

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    ladder: List[RenditionSpec] = Field(default_factory=default_ladder)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator('ladder')
    @classmethod
    def validate_ladder(cls, v: List[RenditionSpec]) -> List[RenditionSpec]:
        if not v:
            raise ValueError("Rendition ladder must contain at least one rendition.")
        names = [r.name for r in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rendition names in ladder: {', '.join(duplicates)}")
        return v
