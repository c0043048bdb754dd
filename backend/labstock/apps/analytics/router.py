from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from labstock.apps.catalog.schemas import ComponentRead
from labstock.apps.stock.models import MovementDirectionEnum
from labstock.database import get_read_db
from labstock.security import Principal, get_current_principal

from . import schemas, services

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/low-stock", response_model=List[ComponentRead])
def low_stock(
    limit: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.list_low_stock(db, limit=limit)


@router.get("/stale-stock", response_model=List[ComponentRead])
def stale_stock(
    months: int = Query(services.STALE_STOCK_MONTHS, ge=0),
    limit: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.list_stale_stock(db, months=months, limit=limit)


@router.get("/monthly/{direction}", response_model=List[schemas.MonthlyBucketRead])
def monthly_movements(
    direction: MovementDirectionEnum,
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    buckets = services.monthly_movement_histogram(db, direction)
    return [schemas.MonthlyBucketRead.model_validate(bucket) for bucket in buckets]


@router.get("/totals", response_model=schemas.InventoryTotalsRead)
def totals(
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return schemas.InventoryTotalsRead.model_validate(services.inventory_totals(db))


@router.get("/dashboard", response_model=schemas.DashboardSnapshotRead)
def dashboard(
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return schemas.DashboardSnapshotRead.model_validate(services.get_dashboard_snapshot(db))
