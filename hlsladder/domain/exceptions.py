from pathlib import Path
from typing import Optional, Sequence


class PackagerError(Exception):
    """Base class for every failure that aborts a packaging job."""
    stage = "packaging"


class ToolNotFoundError(PackagerError):
    stage = "setup"

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} is not installed or in PATH")


class OutputDirError(PackagerError):
    stage = "setup"

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"failed to prepare output directory {path}: {reason}")


class ProbeError(PackagerError):
    stage = "probe"

    def __init__(self, input_path: Path, reason: str):
        self.input_path = input_path
        super().__init__(f"failed to get frame rate for {input_path}: {reason}")


class EncodeError(PackagerError):
    """One rendition's encoder invocation failed."""
    stage = "encode"

    def __init__(self, rendition: str, reason: str, returncode: Optional[int] = None,
                 output_tail: Sequence[str] = ()):
        self.rendition = rendition
        self.returncode = returncode
        self.output_tail = list(output_tail)
        super().__init__(f"error processing rendition {rendition}: {reason}")


class ManifestWriteError(PackagerError):
    stage = "manifest"

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"failed to write master playlist {path}: {reason}")


class PublishError(PackagerError):
    stage = "publish"

    def __init__(self, relative_path: str, reason: str):
        self.relative_path = relative_path
        super().__init__(f"failed to upload file {relative_path}: {reason}")


class StorageSetupError(PackagerError):
    stage = "setup"

    def __init__(self, bucket: str, reason: str):
        self.bucket = bucket
        super().__init__(f"failed to initialize S3 client for bucket {bucket}: {reason}")
