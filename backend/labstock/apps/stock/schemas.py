from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from . import models


class StockAdjustmentBase(BaseModel):
    component_id: str
    quantity: int
    reason: str
    notes: Optional[str] = None


class MovementCreate(StockAdjustmentBase):
    direction: models.MovementDirectionEnum


class ReceiveRequest(StockAdjustmentBase):
    """Inward movement, e.g. a purchase delivery or a return from a project."""


class IssueRequest(StockAdjustmentBase):
    """Outward movement, e.g. parts drawn for a project or scrapped."""


class StockLedgerEntryRead(BaseModel):
    id: str
    component_id: str
    direction: models.MovementDirectionEnum
    quantity: int
    reason: str
    notes: Optional[str] = None
    performed_by: str
    occurred_at: datetime

    class Config:
        from_attributes = True


class BalanceReportRead(BaseModel):
    component_id: str
    opening_quantity: int
    cached_quantity: int
    expected_quantity: int
    lowest_running_balance: int
    entry_count: int
    is_consistent: bool

    class Config:
        from_attributes = True
