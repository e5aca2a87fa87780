from pathlib import Path
from typing import List
from pydantic import BaseModel, Field
from .models import RenditionSpec, TranscodeResult

class Event(BaseModel):
    """Base class for all domain events."""
    job_id: str

class JobStarted(Event):
    input_path: Path
    output_dir: Path
    renditions: List[RenditionSpec]

class FrameRateProbed(Event):
    frame_rate: int
    gop_size: int

class RenditionEvent(Event):
    index: int
    rendition: RenditionSpec

class RenditionStarted(RenditionEvent):
    pass

class RenditionProgress(RenditionEvent):
    encoded_seconds: float

class RenditionCompleted(RenditionEvent):
    duration_seconds: float

class RenditionFailed(RenditionEvent):
    error_message: str

class ManifestWritten(Event):
    path: Path
    entries: int

class ArtifactUploaded(Event):
    key: str
    size_bytes: int

class JobCompleted(Event):
    results: List[TranscodeResult]
    uploaded: int = 0

class JobFailed(Event):
    stage: str
    error_message: str
    results: List[TranscodeResult] = Field(default_factory=list)
