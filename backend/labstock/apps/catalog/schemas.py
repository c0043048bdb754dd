from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from . import models


class ComponentBase(BaseModel):
    component_name: str
    part_number: str
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    category: models.ComponentCategoryEnum
    location_bin: Optional[str] = None
    datasheet_link: Optional[str] = None
    unit_price: Decimal = Decimal("0")
    low_stock_threshold: int = 0


class ComponentCreate(ComponentBase):
    """
    Payload for adding a part to the catalog.

    ``initial_quantity`` seeds both the opening balance and the cached
    on-hand quantity; afterwards quantity only changes through the ledger.
    """
    initial_quantity: int = 0


class ComponentUpdate(BaseModel):
    """Descriptive fields only. Quantity and movement dates are not editable here."""
    component_name: Optional[str] = None
    part_number: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    category: Optional[models.ComponentCategoryEnum] = None
    location_bin: Optional[str] = None
    datasheet_link: Optional[str] = None
    unit_price: Optional[Decimal] = None
    low_stock_threshold: Optional[int] = None


class ComponentRead(ComponentBase):
    id: str
    opening_quantity: int
    current_quantity: int
    last_inward_date: Optional[datetime] = None
    last_outward_date: Optional[datetime] = None
    is_low_stock: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
