"""
Reconciliation result types.

Computed from sent vs received data; never persisted on their own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LineStatus(str, Enum):
    """Delivery state of a single movement line."""
    NOT_RECEIVED = "NOT_RECEIVED"
    PARTIAL = "PARTIAL"
    FULL = "FULL"
    OVER_RECEIVED = "OVER_RECEIVED"
    SERIAL_MISMATCH = "SERIAL_MISMATCH"


class CompleteStatus(str, Enum):
    """Delivery state of a whole movement."""
    NOT_RECEIVED = "NOT_RECEIVED"
    PARTIAL = "PARTIAL"
    FULL = "FULL"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"


# Line statuses that need a person to look at the data
ANOMALY_STATUSES = frozenset({LineStatus.SERIAL_MISMATCH, LineStatus.OVER_RECEIVED})


@dataclass(frozen=True)
class ReconciliationAnomaly:
    """A line whose receipt data needs manual review. Reported, not raised."""
    product_id: str
    status: LineStatus
    message: str
    unexpected_serials: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "status": self.status.value,
            "message": self.message,
            "unexpected_serials": list(self.unexpected_serials),
        }


@dataclass(frozen=True)
class LineReconciliation:
    """Outcome of reconciling one line."""
    product_id: str
    status: LineStatus
    expected: float
    received: float
    missing_serials: tuple[str, ...] = ()
    unexpected_serials: tuple[str, ...] = ()

    @property
    def is_anomaly(self) -> bool:
        return self.status in ANOMALY_STATUSES


@dataclass
class MovementReconciliation:
    """Outcome of reconciling every line of a movement."""
    movement_id: Optional[str]
    complete_status: CompleteStatus
    lines: list[LineReconciliation] = field(default_factory=list)
    anomalies: list[ReconciliationAnomaly] = field(default_factory=list)

    @property
    def requires_review(self) -> bool:
        return self.complete_status == CompleteStatus.REVIEW_REQUIRED

    def to_dict(self) -> dict:
        return {
            "movement_id": self.movement_id,
            "complete_status": self.complete_status.value,
            "lines": [
                {
                    "product_id": line.product_id,
                    "status": line.status.value,
                    "expected": line.expected,
                    "received": line.received,
                    "missing_serials": list(line.missing_serials),
                    "unexpected_serials": list(line.unexpected_serials),
                }
                for line in self.lines
            ],
            "anomalies": [a.to_dict() for a in self.anomalies],
        }
