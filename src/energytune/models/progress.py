"""Analysis run progress models."""

from enum import Enum

from .entries import CamelModel


class RunState(str, Enum):
    """Lifecycle of an analysis run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


class ProgressEvent(CamelModel):
    """A single progress update emitted while a run is active."""
    stage: str = ""
    percentage: int = 0
    current: int = 0
    total: int = 0
    estimated_time_remaining: int = 0  # seconds
    state: RunState = RunState.IDLE

    @classmethod
    def idle(cls) -> "ProgressEvent":
        """The reset progress shown when nothing is running."""
        return cls()
