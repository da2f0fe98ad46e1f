"""
Shared fixtures for the reconciliation tests.
"""

import os

os.environ["ENV"] = "test"

import json
from decimal import Decimal

import pytest

from plrecon.schemas.candidate import CandidateRecord
from plrecon.schemas.decision import MatchPolicy
from plrecon.agents.oracle import MatchOracleClient
from plrecon.agents.engine import ReconciliationEngine
from plrecon.stores import InMemoryAggregateStore
from plrecon.utils.audit import MemoryAuditLog
from plrecon.utils.retry import RetryPolicy


class StubMessage:
    def __init__(self, content):
        self.content = content


class ScriptedLLM:
    """
    Chat model stand-in. Each step is either a response payload (dict or raw
    string) or an exception to raise. The last step repeats once exhausted.
    """

    def __init__(self, *steps):
        self.steps = list(steps)
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        step = self.steps[min(len(self.prompts), len(self.steps)) - 1]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, dict):
            step = json.dumps(step)
        return StubMessage(step)

    @property
    def calls(self):
        return len(self.prompts)


class NameTableLLM:
    """Answers by looking the queried name up in a fixed table of name -> decision."""

    def __init__(self, table):
        self.table = table
        self.calls = 0

    def invoke(self, prompt):
        self.calls += 1
        for name, answer in self.table.items():
            if f'Source name: "{name}"' in prompt:
                return StubMessage(json.dumps(answer))
        return StubMessage(json.dumps({"matched": False, "reference": None, "confidence": 0.1}))


def make_oracle(llm):
    return MatchOracleClient(
        llm=llm,
        retry_policy=RetryPolicy(max_attempts=2, delay_seconds=0.0),
        sleep=lambda seconds: None,
    )


@pytest.fixture
def candidates():
    return [
        CandidateRecord(reference="ref1", text="Acme SRL", collection="Clients"),
        CandidateRecord(reference="ref2", text="Globex SA", collection="Clients"),
    ]


@pytest.fixture
def strict_policy():
    return MatchPolicy(threshold=0.8, scope="single", collections=["Clients"])


@pytest.fixture
def store():
    return InMemoryAggregateStore({"ref1": Decimal("1000.00"), "ref2": Decimal("50")})


@pytest.fixture
def audit():
    return MemoryAuditLog()


@pytest.fixture
def engine_factory(store, audit):
    def build(llm):
        return ReconciliationEngine(oracle=make_oracle(llm), store=store, audit=audit)
    return build
