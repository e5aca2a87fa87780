from hlsladder.infrastructure.event_bus import EventBus
from hlsladder.ui.state import UIState
from hlsladder.domain.events import (
    JobStarted, FrameRateProbed,
    RenditionStarted, RenditionProgress, RenditionCompleted, RenditionFailed,
    ManifestWritten, ArtifactUploaded, JobCompleted, JobFailed
)

class UIManager:
    """Subscribes to EventBus and updates UIState."""
    
    def __init__(self, bus: EventBus, state: UIState):
        self.bus = bus
        self.state = state
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(JobStarted, self.on_job_started)
        self.bus.subscribe(FrameRateProbed, self.on_frame_rate_probed)
        self.bus.subscribe(RenditionStarted, self.on_rendition_started)
        self.bus.subscribe(RenditionProgress, self.on_rendition_progress)
        self.bus.subscribe(RenditionCompleted, self.on_rendition_completed)
        self.bus.subscribe(RenditionFailed, self.on_rendition_failed)
        self.bus.subscribe(ManifestWritten, self.on_manifest_written)
        self.bus.subscribe(ArtifactUploaded, self.on_artifact_uploaded)
        self.bus.subscribe(JobCompleted, self.on_job_completed)
        self.bus.subscribe(JobFailed, self.on_job_failed)

    def on_job_started(self, event: JobStarted):
        self.state.reset(event.job_id, event.input_path.name, event.renditions)

    def on_frame_rate_probed(self, event: FrameRateProbed):
        with self.state._lock:
            self.state.frame_rate = event.frame_rate
            self.state.gop_size = event.gop_size

    def on_rendition_started(self, event: RenditionStarted):
        self.state.mark_started(event.index, event.rendition)

    def on_rendition_progress(self, event: RenditionProgress):
        self.state.update_progress(event.index, event.rendition, event.encoded_seconds)

    def on_rendition_completed(self, event: RenditionCompleted):
        self.state.mark_completed(event.index, event.rendition, event.duration_seconds)

    def on_rendition_failed(self, event: RenditionFailed):
        self.state.mark_failed(event.index, event.rendition, event.error_message)

    def on_manifest_written(self, event: ManifestWritten):
        with self.state._lock:
            self.state.manifest_path = str(event.path)

    def on_artifact_uploaded(self, event: ArtifactUploaded):
        self.state.add_upload(event.size_bytes)

    def on_job_completed(self, event: JobCompleted):
        with self.state._lock:
            self.state.finished = True

    def on_job_failed(self, event: JobFailed):
        with self.state._lock:
            self.state.finished = True
            self.state.failed_stage = event.stage
            self.state.error_message = event.error_message
