"""
Product schemas for the catalog and for bulk product imports.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional

from models.base import BaseSchema


class Product(BaseSchema):
    """
    Product as returned by the entity catalog.

    serialized products are tracked unit by unit through serial numbers.
    """

    id: str = Field(..., description="Product identifier")
    code: str = Field(..., description="Product code")
    name: str = Field(..., description="Product name")
    category: Optional[str] = Field(None, description="Product category")
    barcodes: list[str] = Field(default_factory=list, description="Known barcodes")
    serialized: bool = Field(False, description="Tracked by serial number")


class ProductImportRecord(BaseSchema):
    """
    Canonical product row produced by a validated import.

    Required: code, name, barcode
    Optional: serialized (default False), quantity, serial_numbers
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, max_length=50, description="Product code")
    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    barcode: str = Field(..., min_length=1, max_length=100, description="Barcode")
    serialized: bool = Field(False, description="Tracked by serial number")
    quantity: Optional[float] = Field(None, ge=0, description="Quantity on the row")
    serial_numbers: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Serial numbers in sheet order"
    )

    @field_validator("serial_numbers")
    @classmethod
    def serials_unique(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Serial numbers must not repeat within one record."""
        if len(set(v)) != len(v):
            raise ValueError("duplicate serial numbers in record")
        return v

    def to_payload(self) -> dict:
        """Convert to the sink's create payload."""
        return {
            "code": self.code,
            "name": self.name,
            "barcodes": [self.barcode],
            "serialized": self.serialized,
        }
