"""
P&L Reconciliation Engine
"""

__version__ = "1.0.0"
__author__ = "AI Team"
__description__ = "LLM-assisted reconciliation of invoice ledgers into P&L worksheets"

from plrecon.main import start_reconciliation, reconcile
from plrecon.state import RunContext, RunMode
from plrecon.schemas.output import RunSummary

__all__ = [
    "start_reconciliation",
    "reconcile",
    "RunContext",
    "RunMode",
    "RunSummary",
]
