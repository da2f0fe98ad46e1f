"""
Transaction ledger schema.
One SourceEntry per invoice line taking part in a reconciliation run.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class MatchStatus(str, Enum):
    """Persisted reconciliation status of a transaction line."""
    UNPROCESSED = "Unprocessed"
    MATCHED = "Matched"
    NO_MATCH = "NoMatch"

    @classmethod
    def parse(cls, value) -> "MatchStatus":
        """Read a status cell. Anything unrecognised counts as unprocessed."""
        if isinstance(value, cls):
            return value
        text = str(value).strip() if value is not None else ""
        for status in cls:
            if status.value.lower() == text.lower():
                return status
        return cls.UNPROCESSED


class SourceEntry(BaseModel):
    """A single transaction line from the invoice ledger."""
    row_id: str
    name: Optional[str] = None
    amount: Optional[Decimal] = None
    match_status: MatchStatus = MatchStatus.UNPROCESSED
    matched_reference: Optional[str] = None  # only set while Matched

    def is_matched(self) -> bool:
        return self.match_status is MatchStatus.MATCHED

    def mark_matched(self, reference: str) -> None:
        self.match_status = MatchStatus.MATCHED
        self.matched_reference = reference

    def mark_no_match(self) -> None:
        self.match_status = MatchStatus.NO_MATCH
        self.matched_reference = None
