"""
Tests for the reconciliation engine state machine.
"""

from decimal import Decimal

import pytest

from plrecon.agents.engine import ReconciliationEngine
from plrecon.schemas.entry import SourceEntry, MatchStatus
from plrecon.schemas.decision import MatchPolicy
from plrecon.state import RunContext
from plrecon.stores import InMemoryAggregateStore
from plrecon.errors import ValidationError

from conftest import ScriptedLLM, make_oracle


def match(reference="ref1", confidence=0.92):
    return {"matched": True, "reference": reference, "confidence": confidence}


def test_end_to_end_scenario(engine_factory, candidates, strict_policy, store, audit):
    """ACME S.R.L. is matched to Acme SRL and its amount lands on ref1."""
    entry = SourceEntry(row_id="row:2", name="ACME S.R.L.", amount=Decimal("120.50"))
    context = RunContext.start("January")

    outcome = engine_factory(ScriptedLLM(match())).process(entry, candidates, strict_policy, context)

    assert store.get("ref1") == Decimal("1120.50")
    assert store.get("ref2") == Decimal("50")
    assert entry.match_status is MatchStatus.MATCHED
    assert entry.matched_reference == "ref1"
    assert outcome.accepted

    assert len(audit) == 1
    record = audit.records[0]
    assert record.confidence == pytest.approx(0.92)
    assert record.matched_text == "Acme SRL"
    assert record.previous_value == Decimal("1000.00")
    assert record.new_value == Decimal("1120.50")
    assert record.run_id == context.run_id
    assert record.period == "January"


@pytest.mark.parametrize("matched,confidence", [
    (True, 0.8),
    (True, 0.5),
    (True, 0.0),
    (False, 0.99),
])
def test_threshold_enforcement(engine_factory, candidates, strict_policy, store, matched, confidence):
    """At or below the threshold, or without a match flag, the entry ends NoMatch."""
    payload = {"matched": matched, "reference": "ref1" if matched else None, "confidence": confidence}
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("10"))

    outcome = engine_factory(ScriptedLLM(payload)).process(entry, candidates, strict_policy)

    assert entry.match_status is MatchStatus.NO_MATCH
    assert entry.matched_reference is None
    assert outcome.audit.previous_value is None
    assert store.get("ref1") == Decimal("1000.00")


def test_merged_policy_accepts_lower_confidence(engine_factory, candidates, store):
    """The same decision passes a 0.5 merged-scope policy but not a 0.8 one."""
    policy = MatchPolicy(threshold=0.5, scope="merged", collections=["Expenses", "Staffing"])
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("10"))

    engine_factory(ScriptedLLM(match(confidence=0.6))).process(entry, candidates, policy)

    assert entry.match_status is MatchStatus.MATCHED
    assert store.get("ref1") == Decimal("1010.00")


def test_matched_entries_are_skipped(engine_factory, candidates, strict_policy, store, audit):
    """The idempotency guard neither calls the oracle nor touches aggregates."""
    llm = ScriptedLLM(match())
    entry = SourceEntry(
        row_id="row:2", name="Acme", amount=Decimal("10"),
        match_status=MatchStatus.MATCHED, matched_reference="ref1",
    )

    outcome = engine_factory(llm).process(entry, candidates, strict_policy)

    assert outcome.skipped
    assert llm.calls == 0
    assert store.get("ref1") == Decimal("1000.00")
    assert len(audit) == 0


def test_second_pass_adds_nothing(engine_factory, candidates, strict_policy, store):
    """Running the same entries twice aggregates only once."""
    engine = engine_factory(ScriptedLLM(match()))
    entries = [
        SourceEntry(row_id="row:2", name="Acme", amount=Decimal("10")),
        SourceEntry(row_id="row:3", name="ACME", amount=Decimal("5")),
    ]

    for _ in range(2):
        for entry in entries:
            engine.process(entry, candidates, strict_policy)

    assert store.get("ref1") == Decimal("1015.00")


@pytest.mark.parametrize("order", [(0, 1), (1, 0)])
def test_aggregation_is_additive_in_any_order(engine_factory, candidates, strict_policy, store, order):
    entries = [
        SourceEntry(row_id="row:2", name="Acme SRL", amount=Decimal("120.50")),
        SourceEntry(row_id="row:3", name="ACME", amount=Decimal("79.50")),
    ]
    engine = engine_factory(ScriptedLLM(match()))

    for index in order:
        engine.process(entries[index], candidates, strict_policy)

    assert store.get("ref1") == Decimal("1200.00")


def test_no_match_is_retried_on_next_run(engine_factory, candidates, strict_policy, store):
    """NoMatch is not terminal: a later accepted decision moves the entry to Matched."""
    entry = SourceEntry(row_id="row:2", name="Globex", amount=Decimal("7"))

    engine_factory(ScriptedLLM(match("ref2", 0.4))).process(entry, candidates, strict_policy)
    assert entry.match_status is MatchStatus.NO_MATCH

    engine_factory(ScriptedLLM(match("ref2", 0.95))).process(entry, candidates, strict_policy)
    assert entry.match_status is MatchStatus.MATCHED
    assert store.get("ref2") == Decimal("57")


def test_oracle_failures_end_in_no_match(engine_factory, candidates, strict_policy, audit):
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("10"))
    llm = ScriptedLLM(ConnectionError("down"), ConnectionError("still down"))

    outcome = engine_factory(llm).process(entry, candidates, strict_policy)

    assert entry.match_status is MatchStatus.NO_MATCH
    assert outcome.decision.confidence == 0.0
    assert len(audit) == 1


def test_oracle_recovers_on_retry(engine_factory, candidates, strict_policy):
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("10"))
    llm = ScriptedLLM(ConnectionError("blip"), match())

    engine_factory(llm).process(entry, candidates, strict_policy)

    assert entry.match_status is MatchStatus.MATCHED


def test_non_numeric_aggregate_counts_as_zero(candidates, strict_policy, audit):
    """A text cell in the target is replaced by the contribution and flagged on the audit record."""
    store = InMemoryAggregateStore({"ref1": "see note"})
    engine = ReconciliationEngine(oracle=make_oracle(ScriptedLLM(match())), store=store, audit=audit)
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("42"))

    engine.process(entry, candidates, strict_policy)

    assert store.get("ref1") == Decimal("42")
    record = audit.records[0]
    assert record.previous_value == Decimal("0")
    assert record.warnings and "not numeric" in record.warnings[0]


def test_missing_aggregate_counts_as_zero(candidates, strict_policy, audit):
    store = InMemoryAggregateStore()
    engine = ReconciliationEngine(oracle=make_oracle(ScriptedLLM(match())), store=store, audit=audit)

    engine.process(SourceEntry(row_id="row:2", name="Acme", amount=Decimal("3.25")), candidates, strict_policy)

    assert store.get("ref1") == Decimal("3.25")
    assert audit.records[0].warnings == []


@pytest.mark.parametrize("entry", [
    SourceEntry(row_id="row:2", name="", amount=Decimal("1")),
    SourceEntry(row_id="row:2", name="   ", amount=Decimal("1")),
    SourceEntry(row_id="row:2", name="Acme", amount=None),
])
def test_structural_problems_fail_fast(engine_factory, candidates, strict_policy, audit, entry):
    llm = ScriptedLLM(match())
    with pytest.raises(ValidationError):
        engine_factory(llm).process(entry, candidates, strict_policy)
    assert llm.calls == 0
    assert len(audit) == 0


def test_empty_candidate_set_fails_fast(engine_factory, strict_policy):
    entry = SourceEntry(row_id="row:2", name="Acme", amount=Decimal("1"))
    with pytest.raises(ValidationError):
        engine_factory(ScriptedLLM(match())).process(entry, [], strict_policy)
