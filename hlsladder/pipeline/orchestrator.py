from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
from hlsladder.config.models import AppConfig
from hlsladder.infrastructure.event_bus import EventBus
from hlsladder.infrastructure.ffprobe import FFprobeAdapter
from hlsladder.infrastructure.ffmpeg import FFmpegAdapter
from hlsladder.domain.models import TranscodeJob, TranscodeResult
from hlsladder.domain.exceptions import PackagerError
from hlsladder.domain.events import FrameRateProbed, JobStarted, JobCompleted, JobFailed
from hlsladder.pipeline.context import JobContext
from hlsladder.pipeline.transcoder import TranscodePool, first_failure
from hlsladder.pipeline.manifest import write_master_manifest
from hlsladder.pipeline.uploader import PublishFn, upload_all


class PackagingReport(BaseModel):
    job: TranscodeJob
    results: List[TranscodeResult]
    manifest_path: Path
    uploaded_keys: List[str] = Field(default_factory=list)


class Orchestrator:
    """Probe -> encode every rendition -> master playlist -> optional publish."""

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
        publisher: Optional[PublishFn] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.ffprobe_adapter = ffprobe_adapter
        self.ffmpeg_adapter = ffmpeg_adapter
        self.publisher = publisher
        self.pool = TranscodePool(ffmpeg_adapter, max_workers=config.general.threads)

    def build_job(self, input_path: Path, output_dir: Path, frame_rate: int) -> TranscodeJob:
        return TranscodeJob(
            input_path=input_path,
            output_dir=output_dir,
            frame_rate=frame_rate,
            segment_seconds=self.config.encoder.segment_time,
            renditions=self.config.ladder,
            encoder=self.config.encoder.settings(),
        )

    def run(self, input_path: Path, output_dir: Optional[Path] = None,
            ctx: Optional[JobContext] = None) -> PackagingReport:
        """Packages one source file. Raises the first PackagerError that ends the job."""
        output_dir = output_dir or self.config.general.output_dir
        ctx = ctx or JobContext.create(self.event_bus)
        ctx.publish(JobStarted(job_id=ctx.job_id, input_path=input_path, output_dir=output_dir,
                               renditions=self.config.ladder))
        ctx.logger.info("Processing video into segments.")

        results: List[TranscodeResult] = []
        try:
            frame_rate = self.ffprobe_adapter.probe_frame_rate(input_path, ctx)
            job = self.build_job(input_path, output_dir, frame_rate)
            ctx.publish(FrameRateProbed(job_id=ctx.job_id, frame_rate=frame_rate, gop_size=job.gop_size))
            ctx.logger.info(f"Source frame rate {frame_rate}fps, GOP {job.gop_size} frames")

            results = self.pool.run_all(job, ctx)
            error = first_failure(results)
            if error is not None:
                failed = sum(1 for r in results if not r.ok)
                ctx.logger.error(f"{failed} of {len(results)} renditions failed, skipping master playlist")
                raise error

            manifest_path = write_master_manifest(job, results, ctx, name=self.config.general.manifest_name)

            uploaded: List[str] = []
            if self.publisher is not None:
                ctx.logger.info(f"Uploading artifacts from {output_dir}")
                uploaded = upload_all(output_dir, self.publisher, ctx)
                ctx.logger.info(f"Uploaded {len(uploaded)} files")
        except PackagerError as e:
            ctx.publish(JobFailed(job_id=ctx.job_id, stage=e.stage, error_message=str(e), results=results))
            raise

        ctx.publish(JobCompleted(job_id=ctx.job_id, results=results, uploaded=len(uploaded)))
        ctx.logger.info("Video processing completed successfully")
        return PackagingReport(job=job, results=results, manifest_path=manifest_path, uploaded_keys=uploaded)
