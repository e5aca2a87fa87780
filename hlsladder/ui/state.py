import threading
from datetime import datetime
from typing import Dict, List, Optional
from hlsladder.domain.models import RenditionSpec, RenditionStatus

class RenditionRow:
    """Display state for one rendition."""

    def __init__(self, index: int, rendition: RenditionSpec):
        self.index = index
        self.rendition = rendition
        self.status = RenditionStatus.PENDING
        self.encoded_seconds = 0.0
        self.started_at: Optional[datetime] = None
        self.duration_seconds: Optional[float] = None
        self.error_message: Optional[str] = None

class UIState:
    """Thread-safe state manager for the live dashboard."""
    
    def __init__(self):
        self._lock = threading.RLock()
        self._clear()

    def _clear(self):
        self.job_id: Optional[str] = None
        self.input_name = ""
        self.frame_rate: Optional[int] = None
        self.gop_size: Optional[int] = None
        self.rows: Dict[int, RenditionRow] = {}

        self.manifest_path: Optional[str] = None
        self.uploaded_count = 0
        self.uploaded_bytes = 0

        self.finished = False
        self.failed_stage: Optional[str] = None
        self.error_message: Optional[str] = None

    def reset(self, job_id: str, input_name: str, renditions: List[RenditionSpec]):
        with self._lock:
            self._clear()
            self.job_id = job_id
            self.input_name = input_name
            self.rows = {i: RenditionRow(i, r) for i, r in enumerate(renditions)}

    def ordered_rows(self) -> List[RenditionRow]:
        with self._lock:
            return [self.rows[i] for i in sorted(self.rows)]

    def _row(self, index: int, rendition: RenditionSpec) -> RenditionRow:
        if index not in self.rows:
            self.rows[index] = RenditionRow(index, rendition)
        return self.rows[index]

    def mark_started(self, index: int, rendition: RenditionSpec):
        with self._lock:
            row = self._row(index, rendition)
            row.status = RenditionStatus.ENCODING
            row.started_at = datetime.now()

    def update_progress(self, index: int, rendition: RenditionSpec, seconds: float):
        with self._lock:
            self._row(index, rendition).encoded_seconds = seconds

    def mark_completed(self, index: int, rendition: RenditionSpec, duration: float):
        with self._lock:
            row = self._row(index, rendition)
            row.status = RenditionStatus.COMPLETED
            row.duration_seconds = duration

    def mark_failed(self, index: int, rendition: RenditionSpec, message: str):
        with self._lock:
            row = self._row(index, rendition)
            row.status = RenditionStatus.FAILED
            row.error_message = message

    def add_upload(self, size_bytes: int):
        with self._lock:
            self.uploaded_count += 1
            self.uploaded_bytes += size_bytes

    @property
    def completed_count(self) -> int:
        with self._lock:
            return sum(1 for r in self.rows.values() if r.status == RenditionStatus.COMPLETED)

    @property
    def failed_count(self) -> int:
        with self._lock:
            return sum(1 for r in self.rows.values() if r.status == RenditionStatus.FAILED)

    @property
    def active_count(self) -> int:
        with self._lock:
            return sum(1 for r in self.rows.values() if r.status == RenditionStatus.ENCODING)
