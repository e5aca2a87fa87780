from pathlib import Path
from typing import BinaryIO, Callable, List
from hlsladder.domain.models import ArtifactUploadEntry
from hlsladder.domain.exceptions import PublishError
from hlsladder.domain.events import ArtifactUploaded
from hlsladder.pipeline.context import JobContext

PublishFn = Callable[[str, BinaryIO], object]


def scan_artifacts(output_dir: Path) -> List[ArtifactUploadEntry]:
    """Lists every regular file under output_dir with its forward-slash key."""
    entries = [
        ArtifactUploadEntry(relative_path=path.relative_to(output_dir).as_posix(), absolute_path=path)
        for path in output_dir.rglob("*")
        if path.is_file()
    ]
    return sorted(entries, key=lambda e: e.relative_path)


def upload_all(output_dir: Path, publish: PublishFn, ctx: JobContext) -> List[str]:
    """Publishes the artifact tree and returns the uploaded keys.

    Stops at the first failure; objects already published are left in place.
    """
    uploaded = []
    for entry in scan_artifacts(output_dir):
        try:
            with open(entry.absolute_path, "rb") as body:
                publish(entry.relative_path, body)
        except Exception as e:
            ctx.logger.error(f"Failed to upload {entry.relative_path}: {e}")
            raise PublishError(entry.relative_path, str(e)) from e
        size = entry.absolute_path.stat().st_size
        ctx.logger.debug(f"Uploaded {entry.relative_path} ({size} bytes)")
        ctx.publish(ArtifactUploaded(job_id=ctx.job_id, key=entry.relative_path, size_bytes=size))
        uploaded.append(entry.relative_path)
    return uploaded
