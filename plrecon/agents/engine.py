"""
Reconciliation Engine
Decides, aggregates and audits one transaction line at a time.
"""

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from plrecon.schemas.entry import SourceEntry, MatchStatus
from plrecon.schemas.candidate import CandidateRecord
from plrecon.schemas.decision import MatchPolicy, MatchDecision
from plrecon.schemas.output import AuditRecord, Outcome
from plrecon.agents.indexer import CandidateIndexer
from plrecon.agents.oracle import MatchOracleClient
from plrecon.stores import AggregateStore
from plrecon.state import RunContext
from plrecon.errors import AggregationError, ValidationError
from plrecon.utils import elapsed_ms
from plrecon.utils.audit import AuditSink
from plrecon.utils.confidence import confidence_level_name, interpret_confidence
from plrecon.utils.logging import setup_logging


logger = setup_logging(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationEngine:
    """
    Per-entry state machine.

    Unprocessed and NoMatch entries are sent to the oracle; Matched entries
    are terminal and skipped, which makes re-running a period safe. An
    accepted decision adds the entry amount to the aggregate at the matched
    reference; a rejected one only marks the entry NoMatch. Every decided
    entry leaves exactly one audit record.
    """

    def __init__(
        self,
        oracle: MatchOracleClient,
        store: AggregateStore,
        audit: AuditSink,
        clock: Callable[[], datetime] = _utcnow,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.oracle = oracle
        self.store = store
        self.audit = audit
        self._clock = clock
        self._timer = timer

    def _validate(self, entry: SourceEntry, candidates: List[CandidateRecord]) -> None:
        if not candidates:
            raise ValidationError("Candidate set is empty; nothing to match against")
        if not entry.name or not entry.name.strip():
            raise ValidationError(f"Entry {entry.row_id} has no entity name")
        if entry.amount is None:
            raise ValidationError(f"Entry {entry.row_id} ({entry.name}) has no amount")

    def _aggregate(self, reference: str, amount: Decimal, warnings: List[str]):
        """Add amount to the target at reference. Returns (previous, new)."""
        try:
            previous = self.store.get(reference)
        except AggregationError as e:
            logger.warning(f"[ReconciliationEngine] {e}. Treating it as 0")
            warnings.append(f"{e}; treated as 0")
            previous = Decimal("0")

        new_value = previous + amount
        self.store.set(reference, new_value)
        return previous, new_value

    def process(
        self,
        entry: SourceEntry,
        candidates: List[CandidateRecord],
        policy: MatchPolicy,
        context: Optional[RunContext] = None,
    ) -> Outcome:
        if entry.is_matched():
            logger.debug(
                f"[ReconciliationEngine] {entry.row_id} already matched to "
                f"{entry.matched_reference}, skipping"
            )
            return Outcome(row_id=entry.row_id, status=entry.match_status, skipped=True)

        self._validate(entry, candidates)
        context = context or RunContext()

        started = self._timer()
        decision: MatchDecision = self.oracle.find_best_match(entry.name, candidates)
        latency = elapsed_ms(started, self._timer())

        warnings: List[str] = []
        previous_value = None
        new_value = None
        candidate = None

        if policy.accepts(decision):
            candidate = CandidateIndexer.lookup(candidates).get(decision.reference)
            if candidate is None:
                # only reachable with an oracle that skips reference checks
                raise ValidationError(f"Decision references unknown candidate {decision.reference}")

            previous_value, new_value = self._aggregate(decision.reference, entry.amount, warnings)
            entry.mark_matched(decision.reference)
            logger.info(
                f"[ReconciliationEngine] {entry.row_id} '{entry.name}' -> '{candidate.text}' "
                f"({decision.reference}), {previous_value} + {entry.amount} = {new_value}, "
                f"confidence {confidence_level_name(decision.confidence)}"
            )
        else:
            entry.mark_no_match()
            logger.info(
                f"[ReconciliationEngine] {entry.row_id} '{entry.name}' not matched "
                f"(matched={decision.matched}, confidence {decision.confidence:.2f} "
                f"vs threshold {policy.threshold:.2f}): {interpret_confidence(decision.confidence)[1]}"
            )

        record = AuditRecord(
            timestamp=self._clock(),
            run_id=context.run_id,
            period=context.period,
            row_id=entry.row_id,
            query=entry.name,
            status=entry.match_status,
            matched_reference=entry.matched_reference,
            matched_text=candidate.text if candidate else None,
            collection=candidate.collection if candidate else None,
            contribution=entry.amount,
            previous_value=previous_value,
            new_value=new_value,
            confidence=decision.confidence,
            latency_ms=latency,
            explanation=decision.explanation,
            warnings=warnings,
        )
        self.audit.append(record)

        return Outcome(
            row_id=entry.row_id,
            status=entry.match_status,
            decision=decision,
            audit=record,
        )
