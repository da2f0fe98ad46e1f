"""
Shared utilities and helpers.
"""

import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict
from datetime import datetime


def serialize_for_json(obj: Any) -> Any:
    """Serialize objects that aren't JSON-serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif hasattr(obj, 'model_dump'):  # Pydantic model
        return obj.model_dump(mode="json")
    elif hasattr(obj, '__dict__'):
        return obj.__dict__
    return str(obj)


def dict_to_json_string(data: Dict) -> str:
    """Convert dict to JSON string, handling non-serializable types."""
    return json.dumps(data, default=serialize_for_json, indent=2)


def elapsed_ms(start: float, end: float) -> int:
    """Milliseconds between two monotonic clock readings."""
    return max(0, int(round((end - start) * 1000)))
