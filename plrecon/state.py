"""
Run context shared by every component of a reconciliation run.
The context is immutable: components receive it explicitly instead of
reading session details from module state.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class RunMode(str, Enum):
    """test caps the run to the first few eligible entries, full processes all."""
    TEST = "test"
    FULL = "full"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunContext(BaseModel):
    """Identity of one reconciliation run."""
    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    period: str = ""
    mode: RunMode = RunMode.FULL
    started_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def start(cls, period: str, mode: RunMode = RunMode.FULL) -> "RunContext":
        return cls(period=period, mode=RunMode(mode))

    def label(self) -> str:
        """Short label used in log lines."""
        return f"run {self.run_id[:8]} ({self.period or 'no period'}, {self.mode.value})"
