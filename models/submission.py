"""
Batch submission progress types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProgressPhase(str, Enum):
    """What the submitter was doing when it emitted an event."""
    STARTED = "STARTED"
    COMMITTED = "COMMITTED"
    RETRYING = "RETRYING"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class ProgressEvent:
    """
    One progress report.

    percent is an integer in 0..100 and never decreases across a
    submission. unit is the 0-based index of the unit being submitted.
    """
    percent: int
    phase: ProgressPhase
    committed_records: int
    total_records: int
    unit: Optional[int] = None
    attempt: Optional[int] = None
