import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional

from hlsladder.domain.events import Event
from hlsladder.infrastructure.event_bus import EventBus


class JobLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every record with the job id."""

    def process(self, msg, kwargs):
        return f"[{self.extra['job_id']}] {msg}", kwargs


@dataclass
class JobContext:
    """Per-job handles passed explicitly into every component call.

    The orchestrator owns one context for the lifetime of a job. ``cancel``
    is the token every encode checks; nothing in the job path sets it, so
    adding a timeout only needs a caller that does.
    """
    job_id: str
    event_bus: EventBus
    logger: logging.LoggerAdapter
    cancel: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def create(cls, event_bus: EventBus, job_id: Optional[str] = None,
               logger: Optional[logging.Logger] = None) -> "JobContext":
        job_id = job_id or uuid.uuid4().hex[:8]
        base = logger or logging.getLogger("hlsladder")
        return cls(job_id=job_id, event_bus=event_bus, logger=JobLoggerAdapter(base, {"job_id": job_id}))

    def publish(self, event: Event):
        self.event_bus.publish(event)

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()
