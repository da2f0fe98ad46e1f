"""
Tests for candidate indexing.
"""

import pytest

from plrecon.agents.indexer import CandidateIndexer
from plrecon.schemas.candidate import ListCollection
from plrecon.errors import ValidationError


def test_blank_rows_are_excluded():
    """Blank and whitespace-only names never become candidates."""
    collection = ListCollection("Clients", ["Acme SRL", "", "   ", "Globex SA"])
    candidates = CandidateIndexer().build([collection])

    assert [c.text for c in candidates] == ["Acme SRL", "Globex SA"]


def test_references_survive_blank_filtering():
    """The second non-blank entry resolves to its own row, never to the blank one."""
    collection = ListCollection("Clients", ["Acme SRL", "", "Globex SA"])
    candidates = CandidateIndexer().build([collection])

    assert len(candidates) == 2
    assert candidates[0].reference == "Clients:A:2"
    assert candidates[1].reference == "Clients:A:4"

    lookup = CandidateIndexer.lookup(candidates)
    assert lookup[candidates[1].reference].text == "Globex SA"
    assert "Clients:A:3" not in lookup


def test_multiple_collections_keep_order_and_origin():
    """Merged collections keep input order and remember where each row came from."""
    expenses = ListCollection("Expenses", ["Office Rent", "Acme SRL"])
    staffing = ListCollection("Staffing", ["Acme SRL"], column="B")
    candidates = CandidateIndexer().build([expenses, staffing])

    assert [c.reference for c in candidates] == ["Expenses:A:2", "Expenses:A:3", "Staffing:B:2"]
    assert [c.collection for c in candidates] == ["Expenses", "Expenses", "Staffing"]


def test_build_is_deterministic():
    """Building twice from the same input yields identical lists."""
    collection = ListCollection("Clients", ["Acme SRL", "", "Globex SA", "Initech"])
    indexer = CandidateIndexer()

    assert indexer.build([collection]) == indexer.build([collection])


def test_duplicate_references_are_rejected():
    """Two rows with the same address are a configuration error."""
    collection = ListCollection("Clients", ["Acme SRL"])

    with pytest.raises(ValidationError):
        CandidateIndexer().build([collection, collection])


def test_names_are_trimmed():
    """Surrounding whitespace is not part of the candidate text."""
    candidates = CandidateIndexer().build([ListCollection("Clients", ["  Acme SRL  "])])
    assert candidates[0].text == "Acme SRL"
