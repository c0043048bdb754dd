from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from labstock.database import get_db, get_read_db
from labstock.security import Principal, get_current_principal, require_admin

from . import models, schemas, services

router = APIRouter(prefix="", tags=["stock"])


@router.post(
    "/stock/movements",
    response_model=schemas.StockLedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def record_movement(
    payload: schemas.MovementCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.apply_movement(
        db,
        component_id=payload.component_id,
        direction=payload.direction,
        quantity=payload.quantity,
        reason=payload.reason,
        notes=payload.notes,
        performed_by=principal.id,
    )


@router.post(
    "/stock/receive",
    response_model=schemas.StockLedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def receive_stock(
    payload: schemas.ReceiveRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.receive_stock(
        db,
        component_id=payload.component_id,
        quantity=payload.quantity,
        reason=payload.reason,
        notes=payload.notes,
        performed_by=principal.id,
    )


@router.post(
    "/stock/issue",
    response_model=schemas.StockLedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def issue_stock(
    payload: schemas.IssueRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.issue_stock(
        db,
        component_id=payload.component_id,
        quantity=payload.quantity,
        reason=payload.reason,
        notes=payload.notes,
        performed_by=principal.id,
    )


@router.get("/stock/ledger", response_model=List[schemas.StockLedgerEntryRead])
def list_ledger(
    component_id: Optional[str] = None,
    direction: Optional[models.MovementDirectionEnum] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.list_ledger_entries(
        db,
        component_id=component_id,
        direction=direction,
        start=start,
        end=end,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/components/{component_id}/balance",
    response_model=schemas.BalanceReportRead,
)
def verify_balance(
    component_id: str,
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(require_admin),
):
    report = services.verify_component_balance(db, component_id)
    return schemas.BalanceReportRead.model_validate(report)
