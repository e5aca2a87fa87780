import os
import concurrent.futures
from typing import List, Optional
from hlsladder.infrastructure.ffmpeg import FFmpegAdapter
from hlsladder.domain.models import RenditionSpec, TranscodeJob, TranscodeResult
from hlsladder.domain.exceptions import EncodeError
from hlsladder.domain.events import RenditionStarted, RenditionCompleted, RenditionFailed
from hlsladder.pipeline.context import JobContext


class TranscodePool:
    """Runs one encoder invocation per rendition with at most ``max_workers`` at once.

    A failing rendition never cancels the others: every rendition runs to
    completion and gets its own TranscodeResult. Results come back in ladder
    order whatever order the encodes finish in.
    """

    def __init__(self, ffmpeg_adapter: FFmpegAdapter, max_workers: Optional[int] = None):
        self.ffmpeg_adapter = ffmpeg_adapter
        self.max_workers = max_workers or os.cpu_count() or 1

    def _run_one(self, job: TranscodeJob, index: int, rendition: RenditionSpec, ctx: JobContext) -> TranscodeResult:
        ctx.publish(RenditionStarted(job_id=ctx.job_id, index=index, rendition=rendition))
        ctx.logger.info(f"Encoding {rendition.name} ({rendition.resolution} @ {rendition.video_bitrate_kbps}k)")
        try:
            result = self.ffmpeg_adapter.encode(job, index, rendition, ctx)
        except Exception as e:
            # Log exception but don't crash the worker; the rendition is reported as failed
            ctx.logger.error(f"Exception encoding {rendition.name}: {e}")
            result = TranscodeResult(
                index=index,
                rendition=rendition,
                playlist_path=job.playlist_path(rendition),
                error=EncodeError(rendition.name, f"Exception: {e}"),
            )

        if result.ok:
            ctx.logger.info(f"Finished {rendition.name} in {result.duration_seconds or 0.0:.1f}s")
            ctx.publish(RenditionCompleted(job_id=ctx.job_id, index=index, rendition=rendition,
                                           duration_seconds=result.duration_seconds or 0.0))
        else:
            ctx.logger.error(str(result.error))
            for line in result.error.output_tail:
                ctx.logger.debug(f"  {rendition.name}: {line}")
            ctx.publish(RenditionFailed(job_id=ctx.job_id, index=index, rendition=rendition,
                                        error_message=str(result.error)))
        return result

    def run_all(self, job: TranscodeJob, ctx: JobContext) -> List[TranscodeResult]:
        """Encodes every rendition and returns all results in ladder order."""
        workers = min(self.max_workers, len(job.renditions))
        ctx.logger.debug(f"Starting {len(job.renditions)} encodes with {workers} worker(s)")

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._run_one, job, index, rendition, ctx)
                for index, rendition in enumerate(job.renditions)
            ]
            concurrent.futures.wait(futures)

        return [future.result() for future in futures]


def first_failure(results: List[TranscodeResult]) -> Optional[EncodeError]:
    """Returns the error of the earliest failed rendition in ladder order."""
    for result in sorted(results, key=lambda r: r.index):
        if result.error is not None:
            return result.error
    return None
