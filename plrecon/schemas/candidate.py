"""
Reference ledger schema.
Candidates are the P&L rows an entity name may be matched against.
"""

from typing import Iterable, List, Protocol
from pydantic import BaseModel, ConfigDict


class CollectionRow(BaseModel):
    """One raw row of a reference collection, with its own sheet address."""
    model_config = ConfigDict(frozen=True)

    address: str  # e.g. "A:12", independent of any filtering
    text: str = ""


class CandidateRecord(BaseModel):
    """A reference row eligible for matching."""
    model_config = ConfigDict(frozen=True)

    reference: str  # "<collection>:<column>:<row>"
    text: str
    collection: str


class NamedCollection(Protocol):
    """A named list of reference rows, e.g. the "Expenses" worksheet."""

    def name(self) -> str:
        ...

    def rows(self) -> Iterable[CollectionRow]:
        ...


class ListCollection:
    """In-memory collection backed by a list of names in one sheet column."""

    def __init__(self, name: str, texts: List[str], column: str = "A", first_row: int = 2):
        self._name = name
        self._texts = list(texts)
        self._column = column
        self._first_row = first_row

    def name(self) -> str:
        return self._name

    def rows(self) -> List[CollectionRow]:
        return [
            CollectionRow(address=f"{self._column}:{self._first_row + offset}", text=text or "")
            for offset, text in enumerate(self._texts)
        ]
