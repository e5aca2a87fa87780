from pathlib import Path
from typing import List, Optional
from hlsladder.domain.models import MasterManifestEntry, TranscodeJob, TranscodeResult
from hlsladder.domain.exceptions import ManifestWriteError
from hlsladder.domain.events import ManifestWritten
from hlsladder.pipeline.context import JobContext

MASTER_PLAYLIST_NAME = "playlist.m3u8"
HLS_VERSION = 3


def manifest_entries(results: List[TranscodeResult]) -> List[MasterManifestEntry]:
    if any(not r.ok for r in results):
        raise ValueError("Master playlist can only be built when every rendition succeeded")
    return [MasterManifestEntry.from_result(r) for r in sorted(results, key=lambda r: r.index)]


def build_master_manifest(results: List[TranscodeResult]) -> str:
    lines = ["#EXTM3U", f"#EXT-X-VERSION:{HLS_VERSION}"]
    for entry in manifest_entries(results):
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={entry.bandwidth_bps},RESOLUTION={entry.resolution}")
        lines.append(entry.playlist_name)
    return "\n".join(lines) + "\n"


def write_master_manifest(job: TranscodeJob, results: List[TranscodeResult], ctx: JobContext,
                          name: Optional[str] = None) -> Path:
    """Writes the master playlist into the job's output directory."""
    path = job.output_dir / (name or MASTER_PLAYLIST_NAME)
    content = build_master_manifest(results)
    ctx.logger.info(f"Generating master playlist {path}")
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ManifestWriteError(path, str(e)) from e
    ctx.publish(ManifestWritten(job_id=ctx.job_id, path=path, entries=len(results)))
    return path
