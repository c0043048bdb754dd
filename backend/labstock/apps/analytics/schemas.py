from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel

from labstock.apps.catalog.schemas import ComponentRead


class MonthlyBucketRead(BaseModel):
    month: str
    quantity: int

    class Config:
        from_attributes = True


class InventoryTotalsRead(BaseModel):
    total_units: int
    total_value: Decimal

    class Config:
        from_attributes = True


class DashboardSnapshotRead(BaseModel):
    low_stock: List[ComponentRead]
    stale_stock: List[ComponentRead]
    monthly_inward: List[MonthlyBucketRead]
    monthly_outward: List[MonthlyBucketRead]
    totals: InventoryTotalsRead

    class Config:
        from_attributes = True
