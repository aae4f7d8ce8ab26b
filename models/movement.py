"""
Movement schemas (shipments and transfers) for validation and serialization.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum

from models.base import BaseSchema
from models.reconciliation import CompleteStatus


class MovementType(str, Enum):
    """Kind of stock movement."""
    SHIPMENT = "SHIPMENT"
    TRANSFER = "TRANSFER"


class MovementStatus(str, Enum):
    """Movement lifecycle values."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    INCOMPLETE = "INCOMPLETE"
    DELIVERED = "DELIVERED"


# Allowed next states for each status
STATUS_TRANSITIONS = {
    MovementStatus.DRAFT: {MovementStatus.PENDING, MovementStatus.IN_TRANSIT},
    MovementStatus.PENDING: {MovementStatus.IN_TRANSIT, MovementStatus.INCOMPLETE, MovementStatus.DELIVERED},
    MovementStatus.IN_TRANSIT: {MovementStatus.INCOMPLETE, MovementStatus.DELIVERED},
    MovementStatus.INCOMPLETE: {MovementStatus.INCOMPLETE, MovementStatus.DELIVERED},
    MovementStatus.DELIVERED: set(),
}


def is_valid_movement_status_transition(current: MovementStatus, new: MovementStatus) -> bool:
    """
    Check if a movement status transition is valid.

    Rules:
    - DRAFT only moves to a dispatched state (PENDING or IN_TRANSIT)
    - Receipts move a dispatched movement to INCOMPLETE or DELIVERED
    - INCOMPLETE can be re-received
    - DELIVERED is terminal
    """
    return new in STATUS_TRANSITIONS[current]


# ===================
# LINE SCHEMAS
# ===================

class SerialNumber(BaseSchema):
    """
    One serialized unit.

    id is set once the sink has stored the unit. The lot references come
    from the columns bound during a movement upload.
    """

    serial_number: str = Field(..., min_length=1, max_length=100)
    id: Optional[str] = Field(None, description="Persisted identifier")
    batch_number: Optional[str] = Field(None, max_length=100)
    container_number: Optional[str] = Field(None, max_length=50)
    bl_number: Optional[str] = Field(None, max_length=50, description="Bill of lading")

    @field_validator("container_number", "bl_number")
    @classmethod
    def normalize_reference(cls, v: Optional[str]) -> Optional[str]:
        """Container and BL numbers are stored uppercase."""
        if v is None:
            return v
        return v.upper().strip()


class MovementLine(BaseSchema):
    """One product entry within a movement."""

    id: Optional[str] = Field(None, description="Persisted identifier")
    product_id: str = Field(..., min_length=1, description="Catalog product id")
    serialized: bool = Field(False, description="Copied from the catalog product")
    quantity_sent: float = Field(..., description="Dispatched quantity")
    quantity_received: Optional[float] = Field(
        None,
        ge=0,
        description="Received quantity, null until receipt"
    )
    serial_numbers_sent: list[SerialNumber] = Field(default_factory=list)
    serial_numbers_received: list[SerialNumber] = Field(default_factory=list)

    @property
    def sent_serial_values(self) -> list[str]:
        return [s.serial_number for s in self.serial_numbers_sent]

    @property
    def received_serial_values(self) -> list[str]:
        return [s.serial_number for s in self.serial_numbers_received]


class LineReceipt(BaseSchema):
    """Receipt data for one product, as counted at the destination."""

    product_id: str = Field(..., min_length=1)
    quantity_received: Optional[float] = Field(None, ge=0)
    serial_numbers_received: list[str] = Field(default_factory=list)

    @field_validator("serial_numbers_received")
    @classmethod
    def require_serial_values(cls, v: list[str]) -> list[str]:
        """Received serials are trimmed; blank entries are rejected."""
        values = [s.strip() for s in v]
        if any(not s for s in values):
            raise ValueError("Serial numbers cannot be blank")
        return values


# ===================
# MOVEMENT SCHEMAS
# ===================

class Movement(BaseSchema):
    """
    A shipment or transfer between two warehouses.

    Shipments also carry a driver and a vehicle. A movement and all of its
    lines are always submitted as one unit.
    """

    id: Optional[str] = Field(None, description="Persisted identifier")
    movement_type: MovementType = Field(..., description="SHIPMENT or TRANSFER")
    reference: Optional[str] = Field(None, max_length=50, description="Movement number")
    source_warehouse_id: str = Field(..., description="Dispatching warehouse")
    destination_warehouse_id: str = Field(..., description="Receiving warehouse")
    driver_name: Optional[str] = Field(None, max_length=100)
    vehicle_id: Optional[str] = Field(None)
    lines: list[MovementLine] = Field(default_factory=list)
    status: MovementStatus = Field(MovementStatus.DRAFT)
    complete_status: Optional[CompleteStatus] = Field(None)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("reference")
    @classmethod
    def normalize_reference(cls, v: Optional[str]) -> Optional[str]:
        """Normalize reference numbers to uppercase."""
        if v is None:
            return v
        return v.upper().strip()

    @property
    def record_count(self) -> int:
        """Lines submitted with this movement."""
        return len(self.lines)

    def line_for(self, product_id: str) -> Optional[MovementLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_payload(self) -> dict:
        """Convert to the sink's create/update payload."""
        return self.model_dump(mode="json", exclude_none=True)
