"""
Audit trail for reconciliation decisions.

The trail is append-only: sinks expose append() and nothing else that
changes stored records. Records keep processing order, and their timestamps
never go backwards.
"""

import json
from pathlib import Path
from typing import Iterator, List, Optional, Protocol

from plrecon.schemas.output import AuditRecord
from plrecon.utils.logging import setup_logging, log_decision


logger = setup_logging(__name__)


class AuditSink(Protocol):
    def append(self, record: AuditRecord) -> None:
        ...


class _MonotonicSink:
    """Re-stamps records that would otherwise step back in time."""

    def __init__(self):
        self._last: Optional[AuditRecord] = None

    def _ordered(self, record: AuditRecord) -> AuditRecord:
        if self._last is not None and record.timestamp < self._last.timestamp:
            record = record.model_copy(update={"timestamp": self._last.timestamp})
        self._last = record
        return record


class MemoryAuditLog(_MonotonicSink):
    """Keeps the trail in memory."""

    def __init__(self):
        super().__init__()
        self._records: List[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        record = self._ordered(record)
        self._records.append(record)
        log_decision(logger, record)

    @property
    def records(self) -> List[AuditRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class JsonLinesAuditLog(_MonotonicSink):
    """
    Writes one JSON object per line.
    Nothing touches the filesystem until the first record arrives.
    """

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self.count = 0
        self._resumed = False

    def _resume(self) -> None:
        """Continue ordering from the last record of an existing trail."""
        last_line = None
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    last_line = line
        if last_line is not None:
            self._last = AuditRecord.model_validate_json(last_line)

    def append(self, record: AuditRecord) -> None:
        if not self._resumed and self.path.exists():
            self._resume()
        self._resumed = True

        record = self._ordered(record)

        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"[AuditLog] Creating audit trail at {self.path}")

        with open(self.path, "a", encoding="utf-8") as f:
            f.write(record.model_dump_json() + "\n")

        self.count += 1
        log_decision(logger, record)


def read_audit_log(path) -> Iterator[AuditRecord]:
    """Replay a JSON-lines audit trail in order."""
    path = Path(path)
    if not path.exists():
        return
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield AuditRecord.model_validate(json.loads(line))
