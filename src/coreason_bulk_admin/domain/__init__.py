from .context import Batch, ConfirmMode, RunOptions
from .results import ActionResult, Outcome, RunSummary

__all__ = [
    "ActionResult",
    "Batch",
    "ConfirmMode",
    "Outcome",
    "RunOptions",
    "RunSummary",
]
