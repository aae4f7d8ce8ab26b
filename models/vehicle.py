"""
Vehicle schemas for the catalog and for bulk vehicle imports.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional

from models.base import BaseSchema


class Vehicle(BaseSchema):
    """Vehicle as returned by the entity catalog."""

    id: str = Field(..., description="Vehicle identifier")
    plate_number: str = Field(..., description="Registration plate")
    description: Optional[str] = Field(None, description="Make, model or notes")


class VehicleImportRecord(BaseSchema):
    """Canonical vehicle row produced by a validated import."""

    model_config = ConfigDict(frozen=True)

    plate_number: str = Field(..., min_length=1, max_length=30)
    description: Optional[str] = Field(None, max_length=200)

    @field_validator("plate_number")
    @classmethod
    def normalize_plate(cls, v: str) -> str:
        """Plates compare uppercase without inner spaces."""
        return v.upper().replace(" ", "")

    def to_payload(self) -> dict:
        return {"plate_number": self.plate_number, "description": self.description}
