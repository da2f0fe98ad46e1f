"""
Batch Scheduler
Feeds entries to the engine in paced batches and reports progress.
"""

import time
from typing import Callable, List, Optional

from plrecon.agents.engine import ReconciliationEngine
from plrecon.schemas.entry import SourceEntry, MatchStatus
from plrecon.schemas.candidate import CandidateRecord
from plrecon.schemas.decision import MatchPolicy
from plrecon.schemas.output import ProgressStats, RunSummary
from plrecon.state import RunContext
from plrecon.errors import ValidationError
from plrecon.utils import elapsed_ms
from plrecon.utils.logging import setup_logging, log_component_action
from plrecon.config import get_config


logger = setup_logging(__name__)
config = get_config()

ProgressSink = Callable[[ProgressStats], None]


def partition(entries: List[SourceEntry], batch_size: int) -> List[List[SourceEntry]]:
    """Split entries into consecutive batches of at most batch_size."""
    if batch_size < 1:
        raise ValidationError(f"Batch size must be positive, got {batch_size}")
    return [entries[i:i + batch_size] for i in range(0, len(entries), batch_size)]


class BatchScheduler:
    """
    Sequential, rate-limited driver for a reconciliation run.

    The oracle enforces external rate limits, so consecutive oracle calls
    are separated by per_call_delay and batches by per_batch_delay. Entries
    that are already matched make no oracle call and add no delay.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        sleep: Callable[[float], None] = time.sleep,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self._sleep = sleep
        self._timer = timer

    def _report(self, on_progress: Optional[ProgressSink], stats: ProgressStats) -> None:
        if on_progress is None:
            return
        try:
            on_progress(stats)
        except Exception as e:
            logger.warning(f"[BatchScheduler] Progress sink failed: {e}")

    def run(
        self,
        entries: List[SourceEntry],
        candidates: List[CandidateRecord],
        policy: MatchPolicy,
        context: RunContext,
        batch_size: int = None,
        per_call_delay: float = None,
        per_batch_delay: float = None,
        on_progress: Optional[ProgressSink] = None,
    ) -> RunSummary:
        batch_size = config.BATCH_SIZE if batch_size is None else batch_size
        per_call_delay = config.PER_CALL_DELAY if per_call_delay is None else per_call_delay
        per_batch_delay = config.PER_BATCH_DELAY if per_batch_delay is None else per_batch_delay

        summary = RunSummary(run_id=context.run_id, period=context.period, mode=context.mode)
        batches = partition(entries, batch_size)
        started = self._timer()

        logger.info(
            f"[BatchScheduler] Starting {context.label()}: {len(entries)} entries "
            f"in {len(batches)} batches of {batch_size}"
        )

        for batch_number, batch in enumerate(batches, 1):
            if batch_number > 1 and per_batch_delay > 0:
                logger.debug(f"[BatchScheduler] Pausing {per_batch_delay}s before batch {batch_number}")
                self._sleep(per_batch_delay)

            calls_in_batch = 0
            for entry in batch:
                will_call = entry.match_status is not MatchStatus.MATCHED
                if will_call and calls_in_batch > 0 and per_call_delay > 0:
                    self._sleep(per_call_delay)

                try:
                    outcome = self.engine.process(entry, candidates, policy, context)
                except ValidationError as e:
                    logger.error(f"[BatchScheduler] Run aborted at {entry.row_id}: {e}")
                    summary.errors.append(str(e))
                    summary.elapsed_ms = elapsed_ms(started, self._timer())
                    return summary

                if outcome.skipped:
                    summary.skipped += 1
                else:
                    calls_in_batch += 1
                    summary.processed += 1
                    if outcome.accepted:
                        summary.matched += 1
                    else:
                        summary.no_match += 1

                summary.elapsed_ms = elapsed_ms(started, self._timer())
                self._report(on_progress, ProgressStats(
                    processed=summary.processed,
                    matched=summary.matched,
                    skipped=summary.skipped,
                    elapsed_ms=summary.elapsed_ms,
                ))

            logger.info(
                f"[BatchScheduler] Batch {batch_number}/{len(batches)} done: "
                f"{summary.processed} processed, {summary.matched} matched"
            )

        summary.elapsed_ms = elapsed_ms(started, self._timer())
        log_component_action(
            logger,
            "BatchScheduler",
            summary.message(),
            {"run_id": context.run_id, "processed": summary.processed, "matched": summary.matched},
        )
        return summary
