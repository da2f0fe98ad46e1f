"""
Error taxonomy for the reconciliation engine.
"""


class ReconciliationError(Exception):
    """Base class for all reconciliation failures."""


class ValidationError(ReconciliationError):
    """Malformed or missing required input. Fatal for the current run."""


class OracleError(ReconciliationError):
    """The match oracle could not produce a usable decision."""


class OracleTransportError(OracleError):
    """The oracle call could not complete."""


class OracleSchemaError(OracleError):
    """The oracle response does not fit the MatchDecision contract."""


class AggregationError(ReconciliationError):
    """An aggregate target holds a value that is not numeric."""

    def __init__(self, reference: str, value):
        self.reference = reference
        self.value = value
        super().__init__(f"Aggregate at {reference} is not numeric: {value!r}")
