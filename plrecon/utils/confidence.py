"""
Confidence vocabulary.
Turns oracle confidence scores into readable levels for logs and reports.
"""

from typing import Tuple


def confidence_level_name(confidence: float) -> str:
    """Convert confidence score to readable level name."""
    if confidence >= 0.95:
        return "VERY_HIGH"
    elif confidence >= 0.85:
        return "HIGH"
    elif confidence >= 0.70:
        return "ACCEPTABLE"
    elif confidence >= 0.50:
        return "LOW"
    else:
        return "VERY_LOW"


def interpret_confidence(confidence: float) -> Tuple[str, str]:
    """
    Get human-readable interpretation of confidence score.

    Returns:
        (level_name, description)
    """
    levels = {
        "VERY_HIGH": "Very high confidence in this match",
        "HIGH": "High confidence in this match",
        "ACCEPTABLE": "Acceptable confidence, spot check recommended",
        "LOW": "Low confidence, accepted only under a permissive policy",
        "VERY_LOW": "Very low confidence, treated as no match",
    }

    level = confidence_level_name(confidence)
    return level, levels.get(level, "Unknown confidence level")
