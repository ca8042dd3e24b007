"""
Coreason Bulk Admin: apply one idempotent change to many users, hosts or profiles.
"""

from .domain import ActionResult, Batch, ConfirmMode, Outcome, RunOptions, RunSummary
from .driver import BulkDriver
from .orchestrator import BatchRunner

__version__ = "0.1.0"

__all__ = [
    "ActionResult",
    "Batch",
    "BatchRunner",
    "BulkDriver",
    "ConfirmMode",
    "Outcome",
    "RunOptions",
    "RunSummary",
]
