import threading
import time
from datetime import datetime
from typing import Optional
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from hlsladder.domain.models import RenditionStatus
from hlsladder.ui.state import UIState

STATUS_STYLES = {
    RenditionStatus.PENDING: ("·", "dim"),
    RenditionStatus.ENCODING: ("●", "yellow"),
    RenditionStatus.COMPLETED: ("✓", "green"),
    RenditionStatus.FAILED: ("✗", "red"),
}

class Dashboard:
    """Renders the live rendition table."""

    def __init__(self, state: UIState, console: Optional[Console] = None):
        self.state = state
        self.console = console or Console()
        self._live: Optional[Live] = None
        self._refresh_thread: Optional[threading.Thread] = None
        self._stop_refresh = threading.Event()
        self._ui_lock = threading.Lock()

    def format_size(self, size: int) -> str:
        """Format size in bytes to human readable"""
        if size == 0:
            return "0B"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size < 1024.0:
                return f"{size:.1f}{unit}"
            size /= 1024.0
        return f"{size:.1f}TB"

    def format_time(self, seconds: float) -> str:
        """Format seconds to human readable time"""
        if seconds < 60:
            return f"{int(seconds):02d}s"
        elif seconds < 3600:
            return f"{int(seconds / 60):02d}m {int(seconds % 60):02d}s"
        else:
            return f"{int(seconds / 3600)}h {int((seconds % 3600) / 60):02d}m"

    def _generate_status_panel(self) -> Panel:
        with self.state._lock:
            fps = f"{self.state.frame_rate}fps" if self.state.frame_rate else "probing..."
            gop = str(self.state.gop_size) if self.state.gop_size else "-"
            content = (
                f"Input: {self.state.input_name}  |  Frame rate: {fps}  |  GOP: {gop}\n"
                f"Encoding: {self.state.active_count}  |  Done: {self.state.completed_count}  |  "
                f"Failed: {self.state.failed_count}  |  Uploaded: {self.state.uploaded_count} "
                f"({self.format_size(self.state.uploaded_bytes)})"
            )
        return Panel(content, title=f"JOB {self.state.job_id or ''}".strip(), border_style="cyan")

    def generate_renditions_table(self) -> Table:
        table = Table(box=None, padding=(0, 1))
        table.add_column("", width=1)
        table.add_column("Rendition", style="bold")
        table.add_column("Resolution", style="cyan")
        table.add_column("Video", justify="right")
        table.add_column("Audio", justify="right")
        table.add_column("Encoded", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("Error", style="red", overflow="ellipsis", no_wrap=True)

        for row in self.state.ordered_rows():
            mark, style = STATUS_STYLES[row.status]
            if row.duration_seconds is not None:
                elapsed = row.duration_seconds
            elif row.started_at is not None:
                elapsed = (datetime.now() - row.started_at).total_seconds()
            else:
                elapsed = 0.0
            table.add_row(
                f"[{style}]{mark}[/{style}]",
                row.rendition.name,
                row.rendition.resolution,
                f"{row.rendition.video_bitrate_kbps}k",
                f"{row.rendition.audio_bitrate_kbps}k",
                self.format_time(row.encoded_seconds),
                self.format_time(elapsed),
                row.error_message or "",
            )
        return table

    def create_display(self) -> Group:
        return Group(
            self._generate_status_panel(),
            Panel(self.generate_renditions_table(), title="RENDITIONS", border_style="yellow"),
        )

    def _refresh_loop(self):
        """Background thread to update Live display."""
        while not self._stop_refresh.is_set():
            if self._live:
                display = self.create_display()
                with self._ui_lock:
                    self._live.update(display)
            time.sleep(1.0)

    def start(self):
        """Starts the Live display and refresh thread."""
        self._live = Live(self.create_display(), console=self.console, refresh_per_second=4)
        self._live.start()
        self._stop_refresh.clear()
        self._refresh_thread = threading.Thread(target=self._refresh_loop, daemon=True)
        self._refresh_thread.start()
        return self

    def stop(self):
        """Stops the Live display and refresh thread."""
        self._stop_refresh.set()
        if self._refresh_thread:
            self._refresh_thread.join(timeout=1.0)
        if self._live:
            with self._ui_lock:
                self._live.update(self.create_display())
            self._live.stop()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
