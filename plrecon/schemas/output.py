"""
Output schemas for reconciliation results.
Defines the audit record, progress counters and run summary.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, computed_field

from plrecon.schemas.entry import MatchStatus
from plrecon.schemas.decision import MatchDecision
from plrecon.state import RunMode


class AuditRecord(BaseModel):
    """One immutable line of the audit trail."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    run_id: str
    period: str
    row_id: str
    query: str
    status: MatchStatus
    matched_reference: Optional[str] = None
    matched_text: Optional[str] = None
    collection: Optional[str] = None
    contribution: Decimal
    previous_value: Optional[Decimal] = None
    new_value: Optional[Decimal] = None
    confidence: float = Field(ge=0.0, le=1.0)
    latency_ms: int = 0
    explanation: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ProgressStats(BaseModel):
    """Incremental counters pushed to the progress sink after every entry."""
    model_config = ConfigDict(frozen=True)

    processed: int = 0
    matched: int = 0
    skipped: int = 0
    elapsed_ms: int = 0


class Outcome(BaseModel):
    """Result of processing one source entry."""
    row_id: str
    status: MatchStatus
    skipped: bool = False
    decision: Optional[MatchDecision] = None
    audit: Optional[AuditRecord] = None

    @property
    def accepted(self) -> bool:
        return not self.skipped and self.status is MatchStatus.MATCHED


class RunSummary(BaseModel):
    """Final report of a reconciliation run."""
    run_id: str
    period: str
    mode: RunMode
    processed: int = 0
    matched: int = 0
    no_match: int = 0
    skipped: int = 0
    elapsed_ms: int = 0
    errors: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def aborted(self) -> bool:
        return bool(self.errors)

    def message(self) -> str:
        """Human-readable outcome, including progress made before an abort."""
        progress = (
            f"{self.processed} processed, {self.matched} matched, "
            f"{self.no_match} without match, {self.skipped} already matched"
        )
        seconds = self.elapsed_ms / 1000
        if self.aborted:
            return f"Reconciliation aborted after {progress} ({seconds:.1f}s): {self.errors[0]}"
        return f"Reconciliation complete for {self.period}: {progress} ({seconds:.1f}s)"
