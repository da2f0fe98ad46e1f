"""
Aggregate stores.
An aggregate target is the numeric cell a matched contribution is added to.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Protocol

from plrecon.errors import AggregationError


class AggregateStore(Protocol):
    """Read/write access to aggregate targets by candidate reference."""

    def get(self, reference: str) -> Decimal:
        ...

    def set(self, reference: str, value: Decimal) -> None:
        ...


def coerce_amount(value, reference: str = "") -> Decimal:
    """
    Convert a stored cell to a Decimal.

    Blank cells (None, empty string, NaN) count as zero. Anything that is
    not already a plain number raises AggregationError; locale-specific text
    such as "1.234,56" is not cleaned up here.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise AggregationError(reference, value)
    if isinstance(value, Decimal):
        if value.is_nan():
            return Decimal("0")
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return Decimal("0")
        if isinstance(value, float) and math.isinf(value):
            raise AggregationError(reference, value)
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return Decimal("0")
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise AggregationError(reference, value)
        if not number.is_finite():
            raise AggregationError(reference, value)
        return number
    raise AggregationError(reference, value)


class InMemoryAggregateStore:
    """Dictionary-backed aggregate store."""

    def __init__(self, values: Optional[Dict[str, object]] = None):
        self.values: Dict[str, object] = dict(values or {})

    def get(self, reference: str) -> Decimal:
        return coerce_amount(self.values.get(reference), reference)

    def set(self, reference: str, value: Decimal) -> None:
        self.values[reference] = value
