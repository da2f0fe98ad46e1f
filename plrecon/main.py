"""
Main entry point for the P&L reconciliation system.
"""

import re
from typing import Callable, List, Optional

from plrecon.state import RunContext, RunMode
from plrecon.schemas.entry import SourceEntry
from plrecon.schemas.candidate import NamedCollection
from plrecon.schemas.decision import MatchPolicy
from plrecon.schemas.output import ProgressStats, RunSummary
from plrecon.agents.indexer import CandidateIndexer
from plrecon.agents.oracle import MatchOracleClient
from plrecon.agents.engine import ReconciliationEngine
from plrecon.agents.scheduler import BatchScheduler
from plrecon.ledgers import TransactionLedger, ProfitAndLossWorkbook, WorksheetAggregateStore
from plrecon.stores import AggregateStore
from plrecon.errors import ValidationError
from plrecon.utils.audit import AuditSink, JsonLinesAuditLog
from plrecon.utils.logging import setup_logging
from plrecon.utils import dict_to_json_string
from plrecon.config import get_config


logger = setup_logging(__name__)
config = get_config()


MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

ISO_PERIOD = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_period(period: str) -> str:
    """Accept an English month name (returned title-cased) or YYYY-MM."""
    text = (period or "").strip()
    if text.lower() in MONTHS:
        return text.title()
    if ISO_PERIOD.match(text):
        return text
    raise ValidationError(f"Invalid period '{period}': expected a month name (e.g. January) or YYYY-MM")


def build_policy(
    scope: str = None,
    collections: Optional[List[str]] = None,
    threshold: Optional[float] = None,
) -> MatchPolicy:
    """
    Build the match policy for a run.

    A single-scope search uses exactly one authoritative collection; a
    merged search spans several. Each scope has its own default threshold.
    """
    scope = scope or config.MATCH_SCOPE
    if scope not in ("single", "merged"):
        raise ValidationError(f"Invalid match scope '{scope}'")

    collections = list(collections or config.RECONCILE_COLLECTIONS)
    if not collections:
        raise ValidationError("No reference collections configured")
    if scope == "single":
        collections = collections[:1]

    if threshold is None:
        threshold = config.threshold_for_scope(scope)
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError(f"Threshold must be within [0, 1], got {threshold}")

    return MatchPolicy(threshold=threshold, scope=scope, collections=collections)


def select_entries(entries: List[SourceEntry], mode: RunMode, limit: int = None) -> List[SourceEntry]:
    """Test mode keeps only the first `limit` entries that are not yet matched."""
    if RunMode(mode) is RunMode.FULL:
        return entries
    limit = config.TEST_MODE_LIMIT if limit is None else limit
    return [entry for entry in entries if not entry.is_matched()][:limit]


def reconcile(
    entries: List[SourceEntry],
    collections: List[NamedCollection],
    store: AggregateStore,
    policy: MatchPolicy,
    context: RunContext,
    oracle: MatchOracleClient,
    audit: AuditSink,
    on_progress: Optional[Callable[[ProgressStats], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> RunSummary:
    """Run one reconciliation over already-loaded collaborators."""
    candidates = CandidateIndexer().build(collections)
    if not candidates:
        raise ValidationError(f"No candidates found in collections: {', '.join(policy.collections)}")

    engine = ReconciliationEngine(oracle=oracle, store=store, audit=audit)
    scheduler = BatchScheduler(engine, sleep=sleep) if sleep else BatchScheduler(engine)

    return scheduler.run(
        select_entries(entries, context.mode),
        candidates,
        policy,
        context,
        on_progress=on_progress,
    )


def start_reconciliation(
    period: str,
    policy: Optional[MatchPolicy] = None,
    mode: str = "test",
    transactions_path: str = None,
    workbook_dir: str = None,
    audit_path: str = None,
    oracle: Optional[MatchOracleClient] = None,
    on_progress: Optional[Callable[[ProgressStats], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> RunSummary:
    """
    Reconcile the transaction ledger into the P&L workbook for one period.

    Structural problems found before the first entry (bad period, missing
    columns or sheets) raise ValidationError. Once entries are being
    processed, a ValidationError stops the run and is reported in the
    summary. Ledger changes are saved in every case, so an interrupted run
    can be resumed.
    """
    period = validate_period(period)
    policy = policy or build_policy()
    try:
        run_mode = RunMode(mode)
    except ValueError:
        raise ValidationError(f"Invalid mode '{mode}': expected test or full")
    context = RunContext.start(period, run_mode)

    ledger = TransactionLedger(transactions_path or config.TRANSACTIONS_PATH)
    workbook = ProfitAndLossWorkbook(workbook_dir or config.WORKBOOK_DIR)

    entries = ledger.load()
    collections = [workbook.collection(name) for name in policy.collections]
    workbook.require_period(period, policy.collections)

    logger.info(f"Starting reconciliation {context.label()}")
    logger.info(f"Policy: {policy.scope} over {', '.join(policy.collections)}, threshold {policy.threshold}")

    try:
        summary = reconcile(
            entries,
            collections,
            WorksheetAggregateStore(workbook, period),
            policy,
            context,
            oracle or MatchOracleClient(),
            JsonLinesAuditLog(audit_path or config.AUDIT_LOG_PATH),
            on_progress=on_progress,
            sleep=sleep,
        )
    finally:
        workbook.save()
        ledger.save(entries)

    if summary.aborted:
        logger.error(summary.message())
    else:
        logger.info(summary.message())

    return summary


def format_summary_json(summary: RunSummary) -> str:
    """Format summary as JSON string."""
    return dict_to_json_string(summary.model_dump(mode="json"))


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        run_period = sys.argv[1]
        run_mode = sys.argv[2] if len(sys.argv) > 2 else "test"
        run_scope = sys.argv[3] if len(sys.argv) > 3 else None

        try:
            result = start_reconciliation(run_period, build_policy(run_scope), run_mode)
        except ValidationError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(format_summary_json(result))
        sys.exit(1 if result.aborted else 0)
    else:
        print("Usage: python -m plrecon.main <period> [test|full] [single|merged]")
