"""
CSV ledger adapters.

The transaction ledger is one CSV sheet of invoice lines. The P&L workbook
is a directory holding one CSV sheet per reference collection, each with a
name column and one column per period. Rows are addressed the way a
spreadsheet user sees them: column letter and 1-based sheet row, with the
header on row 1.
"""

from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from plrecon.schemas.entry import SourceEntry, MatchStatus
from plrecon.schemas.candidate import CollectionRow
from plrecon.stores import coerce_amount
from plrecon.errors import AggregationError, ValidationError
from plrecon.utils.logging import setup_logging
from plrecon.config import get_config


logger = setup_logging(__name__)
config = get_config()

FIRST_DATA_ROW = 2


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def cell_text(value) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def read_sheet(path: Path) -> pd.DataFrame:
    """Read a CSV sheet keeping every cell as written."""
    return pd.read_csv(path, dtype=object)


class TransactionLedger:
    """Invoice lines, with their reconciliation status persisted alongside."""

    def __init__(
        self,
        path,
        name_column: str = None,
        amount_column: str = None,
        status_column: str = None,
        reference_column: str = None,
    ):
        self.path = Path(path)
        self.name_column = name_column or config.TX_NAME_COLUMN
        self.amount_column = amount_column or config.TX_AMOUNT_COLUMN
        self.status_column = status_column or config.TX_STATUS_COLUMN
        self.reference_column = reference_column or config.TX_REFERENCE_COLUMN
        self.frame: Optional[pd.DataFrame] = None
        self._index_by_row_id: Dict[str, int] = {}

    def load(self) -> List[SourceEntry]:
        if not self.path.exists():
            raise ValidationError(f"Transaction ledger not found: {self.path}")

        self.frame = read_sheet(self.path)

        missing = [c for c in (self.name_column, self.amount_column) if c not in self.frame.columns]
        if missing:
            raise ValidationError(
                f"Transaction ledger {self.path.name} is missing required columns: {', '.join(missing)}"
            )

        for column in (self.status_column, self.reference_column):
            if column not in self.frame.columns:
                self.frame[column] = None

        entries = []
        for index, row in self.frame.iterrows():
            name = cell_text(row[self.name_column])
            raw_amount = row[self.amount_column]
            if not name and not cell_text(raw_amount):
                continue

            row_id = f"row:{index + FIRST_DATA_ROW}"
            amount: Optional[Decimal] = None
            if cell_text(raw_amount):
                try:
                    amount = coerce_amount(raw_amount, row_id)
                except AggregationError:
                    logger.warning(f"[TransactionLedger] {row_id}: unreadable amount {raw_amount!r}")

            status = MatchStatus.parse(cell_text(row[self.status_column]))
            reference = cell_text(row[self.reference_column]) or None
            if status is MatchStatus.MATCHED and not reference:
                logger.warning(f"[TransactionLedger] {row_id} is marked Matched without a reference")
            if status is not MatchStatus.MATCHED:
                reference = None

            self._index_by_row_id[row_id] = index
            entries.append(SourceEntry(
                row_id=row_id,
                name=name or None,
                amount=amount,
                match_status=status,
                matched_reference=reference,
            ))

        logger.info(f"[TransactionLedger] Loaded {len(entries)} entries from {self.path}")
        return entries

    def save(self, entries: Iterable[SourceEntry]) -> None:
        """Write statuses and references back to the sheet."""
        if self.frame is None:
            raise ValidationError("Transaction ledger was never loaded")

        for entry in entries:
            index = self._index_by_row_id.get(entry.row_id)
            if index is None:
                continue
            status = entry.match_status
            self.frame.at[index, self.status_column] = (
                status.value if status is not MatchStatus.UNPROCESSED else None
            )
            self.frame.at[index, self.reference_column] = entry.matched_reference

        self.frame.to_csv(self.path, index=False)
        logger.debug(f"[TransactionLedger] Saved {self.path}")


class WorksheetCollection:
    """One P&L sheet seen as a NamedCollection."""

    def __init__(self, workbook: "ProfitAndLossWorkbook", sheet_name: str):
        self.workbook = workbook
        self.sheet_name = sheet_name

    def name(self) -> str:
        return self.sheet_name

    def rows(self) -> List[CollectionRow]:
        frame = self.workbook.sheet(self.sheet_name)
        letter = column_letter(frame.columns.get_loc(self.workbook.name_column))
        return [
            CollectionRow(address=f"{letter}:{index + FIRST_DATA_ROW}", text=cell_text(value))
            for index, value in enumerate(frame[self.workbook.name_column])
        ]


class ProfitAndLossWorkbook:
    """A directory of CSV sheets, one per reference collection."""

    def __init__(self, directory, name_column: str = None):
        self.directory = Path(directory)
        self.name_column = name_column or config.PL_NAME_COLUMN
        self._sheets: Dict[str, pd.DataFrame] = {}
        self._dirty = set()

    def sheet_path(self, sheet_name: str) -> Path:
        return self.directory / f"{sheet_name}.csv"

    def sheet(self, sheet_name: str) -> pd.DataFrame:
        if sheet_name not in self._sheets:
            path = self.sheet_path(sheet_name)
            if not path.exists():
                raise ValidationError(f"Unknown reference collection '{sheet_name}' (no {path})")
            frame = read_sheet(path)
            if self.name_column not in frame.columns:
                raise ValidationError(f"Sheet '{sheet_name}' has no '{self.name_column}' column")
            self._sheets[sheet_name] = frame
        return self._sheets[sheet_name]

    def collection(self, sheet_name: str) -> WorksheetCollection:
        self.sheet(sheet_name)
        return WorksheetCollection(self, sheet_name)

    def require_period(self, period: str, sheet_names: Iterable[str]) -> None:
        for sheet_name in sheet_names:
            if period not in self.sheet(sheet_name).columns:
                raise ValidationError(f"Sheet '{sheet_name}' has no column for period '{period}'")

    def locate(self, reference: str) -> Tuple[str, int]:
        """Decode "<sheet>:<column>:<row>" into (sheet name, frame index)."""
        parts = reference.rsplit(":", 2)
        if len(parts) != 3 or not parts[2].isdigit():
            raise ValidationError(f"Malformed reference: {reference}")
        sheet_name, _, row = parts
        frame = self.sheet(sheet_name)
        index = int(row) - FIRST_DATA_ROW
        if not 0 <= index < len(frame):
            raise ValidationError(f"Reference points outside sheet '{sheet_name}': {reference}")
        return sheet_name, index

    def read_cell(self, reference: str, column: str):
        sheet_name, index = self.locate(reference)
        return self.sheet(sheet_name).at[index, column]

    def write_cell(self, reference: str, column: str, value) -> None:
        sheet_name, index = self.locate(reference)
        self.sheet(sheet_name).at[index, column] = value
        self._dirty.add(sheet_name)

    def save(self) -> None:
        for sheet_name in sorted(self._dirty):
            self._sheets[sheet_name].to_csv(self.sheet_path(sheet_name), index=False)
            logger.debug(f"[ProfitAndLossWorkbook] Saved sheet '{sheet_name}'")
        self._dirty.clear()


class WorksheetAggregateStore:
    """Aggregate targets are the period column cells of the matched rows."""

    def __init__(self, workbook: ProfitAndLossWorkbook, period: str):
        self.workbook = workbook
        self.period = period

    def get(self, reference: str) -> Decimal:
        return coerce_amount(self.workbook.read_cell(reference, self.period), reference)

    def set(self, reference: str, value: Decimal) -> None:
        self.workbook.write_cell(reference, self.period, str(value))
