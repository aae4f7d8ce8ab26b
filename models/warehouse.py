"""
Warehouse schemas for the catalog and for bulk warehouse imports.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional

from models.base import BaseSchema


class Warehouse(BaseSchema):
    """Warehouse as returned by the entity catalog."""

    id: str = Field(..., description="Warehouse identifier")
    code: str = Field(..., description="Warehouse code")
    name: str = Field(..., description="Warehouse name")
    location: Optional[str] = Field(None, description="Physical location")
    emails: list[str] = Field(default_factory=list, description="Notification emails")


class WarehouseImportRecord(BaseSchema):
    """Canonical warehouse row produced by a validated import."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=200)

    @field_validator("code")
    @classmethod
    def code_uppercase(cls, v: str) -> str:
        """Warehouse codes are stored uppercase."""
        return v.upper()

    def to_payload(self) -> dict:
        return {"code": self.code, "name": self.name, "location": self.location}
