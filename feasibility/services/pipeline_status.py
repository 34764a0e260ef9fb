import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

STEP_STATES = ("started", "completed", "failed")


@dataclass(frozen=True)
class StepEvent:
    step_name: str
    status: str
    timestamp: str
    duration_ms: float | None = None
    error: str | None = None

    def to_payload(self) -> dict:
        return {"type": "step", **asdict(self)}


@dataclass
class PipelineStatus:
    """Progress of one running analysis, read by a single SSE consumer.

    The consumer keeps a cursor into ``events``; ``next_events`` returns
    everything past the cursor, waiting for a change when there is nothing new.
    """
    report_id: str
    events: list[StepEvent] = field(default_factory=list)
    complete: bool = False
    error: str | None = None
    _changed: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _cursor: int = 0

    def emit(self, step_name: str, status: str, duration_ms: float | None = None, error: str | None = None):
        if status not in STEP_STATES:
            raise ValueError(f"Unknown step state '{status}'")
        self.events.append(StepEvent(
            step_name=step_name,
            status=status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            duration_ms=duration_ms,
            error=error,
        ))
        self._changed.set()

    def mark_complete(self, error: str | None = None):
        """Terminal state; ``error`` is the user-facing message when the analysis failed."""
        self.complete = True
        self.error = error
        self._changed.set()

    def final_payload(self) -> dict:
        if self.error:
            return {"type": "error", "report_id": self.report_id, "error": self.error}
        return {"type": "complete", "report_id": self.report_id}

    async def next_events(self, timeout: float = 30.0) -> list[StepEvent]:
        if self._cursor == len(self.events) and not self.complete:
            self._changed.clear()
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
        new = self.events[self._cursor:]
        self._cursor = len(self.events)
        return new


class StatusRegistry:
    """In-process map of report id to the status of its background run."""

    def __init__(self):
        self._statuses: dict[str, PipelineStatus] = {}

    def create(self, report_id: str) -> PipelineStatus:
        status = PipelineStatus(report_id=report_id)
        self._statuses[report_id] = status
        return status

    def get(self, report_id: str) -> PipelineStatus | None:
        return self._statuses.get(report_id)

    def discard(self, report_id: str):
        self._statuses.pop(report_id, None)


statuses = StatusRegistry()
