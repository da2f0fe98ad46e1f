"""
Oracle decision and acceptance policy models.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchDecision(BaseModel):
    """The oracle's answer for one entity name."""
    model_config = ConfigDict(frozen=True)

    matched: bool
    reference: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def _reference_only_when_matched(self) -> "MatchDecision":
        if not self.matched and self.reference is not None:
            raise ValueError("An unmatched decision cannot carry a reference")
        return self

    @classmethod
    def no_match(cls, explanation: Optional[str] = None) -> "MatchDecision":
        """The degraded decision used when the oracle cannot answer."""
        return cls(matched=False, reference=None, confidence=0.0, explanation=explanation)


class MatchPolicy(BaseModel):
    """
    Acceptance policy for one reconciliation target.

    A decision is accepted only when the oracle reports a match with a
    confidence strictly above the threshold.
    """
    model_config = ConfigDict(frozen=True)

    threshold: float = Field(ge=0.0, le=1.0)
    scope: Literal["single", "merged"] = "single"
    collections: List[str] = Field(default_factory=list)

    def accepts(self, decision: MatchDecision) -> bool:
        return decision.matched and decision.confidence > self.threshold
