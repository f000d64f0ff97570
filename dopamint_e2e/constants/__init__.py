"""Constants for Dopamint E2E.

All classes can be imported directly from this package:
    from dopamint_e2e.constants import Timeouts, Intervals, Retries
"""

from .resilience import DismissalConfig, Retries, Stagger, WorkflowOffsets
from .timing import Delays, Intervals, Timeouts

__all__ = [
    "Timeouts",
    "Intervals",
    "Delays",
    "Retries",
    "DismissalConfig",
    "WorkflowOffsets",
    "Stagger",
]
