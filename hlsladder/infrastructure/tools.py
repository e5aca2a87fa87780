import logging
import shutil
from pathlib import Path
from typing import Iterable
from hlsladder.domain.exceptions import OutputDirError, ToolNotFoundError

logger = logging.getLogger(__name__)


def check_required_tools(tools: Iterable[str] = ("ffmpeg", "ffprobe")):
    """Raises ToolNotFoundError for the first executable missing from PATH."""
    for tool in tools:
        if shutil.which(tool) is None:
            logger.error(f"Required tool not found in PATH: {tool}")
            raise ToolNotFoundError(tool)


def prepare_output_dir(output_dir: Path) -> Path:
    """Clears and recreates the job output directory."""
    try:
        if output_dir.exists():
            if output_dir.is_dir():
                shutil.rmtree(output_dir)
            else:
                output_dir.unlink()
        output_dir.mkdir(parents=True)
    except OSError as e:
        logger.error(f"Failed to prepare output directory {output_dir}: {e}")
        raise OutputDirError(output_dir, str(e)) from e
    return output_dir
