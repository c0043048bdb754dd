from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from labstock.database import get_db, get_read_db
from labstock.security import Principal, get_current_principal, require_admin

from . import models, schemas, services

router = APIRouter(prefix="/components", tags=["catalog"])


@router.get("", response_model=List[schemas.ComponentRead])
def list_components(
    search: Optional[str] = None,
    category: Optional[models.ComponentCategoryEnum] = None,
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.list_components(db, search=search, category=category)


@router.post("", response_model=schemas.ComponentRead, status_code=status.HTTP_201_CREATED)
def create_component(
    payload: schemas.ComponentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    return services.create_component(db, payload=payload, created_by=principal.id)


@router.get("/{component_id}", response_model=schemas.ComponentRead)
def get_component(
    component_id: str,
    db: Session = Depends(get_read_db),
    principal: Principal = Depends(get_current_principal),
):
    return services.get_component(db, component_id)


@router.patch("/{component_id}", response_model=schemas.ComponentRead)
def update_component(
    component_id: str,
    payload: schemas.ComponentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    return services.update_component(db, component_id=component_id, payload=payload)
