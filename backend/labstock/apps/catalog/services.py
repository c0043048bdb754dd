from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labstock.errors import ComponentNotFound, InvalidInput, StoreUnavailable

from . import models, schemas

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("component_name", "part_number")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _bounded_text(field: str, value: Optional[str]) -> Optional[str]:
    cleaned = _clean_text(value)
    limit = getattr(models.Component.__table__.c[field].type, "length", None)
    if cleaned is not None and limit is not None and len(cleaned) > limit:
        raise InvalidInput(f"{field} must be at most {limit} characters.")
    return cleaned


def _require_text(field: str, value: Optional[str]) -> str:
    cleaned = _bounded_text(field, value)
    if not cleaned:
        raise InvalidInput(f"{field} is required.")
    return cleaned


def _require_non_negative_int(field: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{field} must be a whole number.")
    if value < 0:
        raise InvalidInput(f"{field} must be >= 0.")
    return value


def _require_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput("unit_price must be a decimal number.")
    if not price.is_finite() or price < 0:
        raise InvalidInput("unit_price must be >= 0.")
    return price


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Catalog write failed", extra={"action": action, "error": str(exc)})
        raise StoreUnavailable(f"Database error while trying to {action}.") from exc


def get_component(db: Session, component_id: str) -> models.Component:
    component = db.get(models.Component, component_id, populate_existing=True)
    if component is None:
        raise ComponentNotFound(component_id)
    return component


def list_components(
    db: Session,
    *,
    search: Optional[str] = None,
    category: Optional[models.ComponentCategoryEnum] = None,
) -> List[models.Component]:
    """
    Catalog listing ordered by component name.

    ``search`` is a case-insensitive substring match against name, part
    number, category label and location bin; ``category`` is an exact match.
    """
    query = db.query(models.Component)

    term = _clean_text(search)
    if term:
        pattern = f"%{_escape_like(term)}%"
        clauses = [
            models.Component.component_name.ilike(pattern, escape="\\"),
            models.Component.part_number.ilike(pattern, escape="\\"),
            models.Component.location_bin.ilike(pattern, escape="\\"),
        ]
        # Categories are persisted by enum name, so match against the labels here.
        label_matches = [c for c in models.ComponentCategoryEnum if term.lower() in c.value.lower()]
        if label_matches:
            clauses.append(models.Component.category.in_(label_matches))
        query = query.filter(or_(*clauses))

    if category is not None:
        query = query.filter(models.Component.category == category)

    return query.order_by(models.Component.component_name.asc(), models.Component.id.asc()).all()


def create_component(
    db: Session,
    *,
    payload: schemas.ComponentCreate,
    created_by: str,
) -> models.Component:
    component = models.Component(
        component_name=_require_text("component_name", payload.component_name),
        part_number=_require_text("part_number", payload.part_number),
        manufacturer=_bounded_text("manufacturer", payload.manufacturer),
        description=_bounded_text("description", payload.description),
        category=payload.category,
        location_bin=_bounded_text("location_bin", payload.location_bin),
        datasheet_link=_bounded_text("datasheet_link", payload.datasheet_link),
        unit_price=_require_price(payload.unit_price),
        low_stock_threshold=_require_non_negative_int("low_stock_threshold", payload.low_stock_threshold),
        opening_quantity=_require_non_negative_int("initial_quantity", payload.initial_quantity),
        current_quantity=payload.initial_quantity,
        created_by=_require_text("created_by", created_by),
    )
    db.add(component)
    _commit(db, "create component")
    db.refresh(component)
    logger.info(
        "Component created",
        extra={
            "component_id": component.id,
            "part_number": component.part_number,
            "opening_quantity": component.opening_quantity,
            "created_by": created_by,
        },
    )
    return component


def update_component(
    db: Session,
    *,
    component_id: str,
    payload: schemas.ComponentUpdate,
) -> models.Component:
    component = get_component(db, component_id)
    # Validate everything before touching the row so a rejected edit leaves it clean.
    cleaned = {}
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field in _REQUIRED_TEXT_FIELDS:
            value = _require_text(field, value)
        elif field == "category":
            if value is None:
                raise InvalidInput("category is required.")
        elif field == "unit_price":
            value = _require_price(value)
        elif field == "low_stock_threshold":
            value = _require_non_negative_int(field, value)
        else:
            value = _bounded_text(field, value)
        cleaned[field] = value

    for field, value in cleaned.items():
        setattr(component, field, value)

    _commit(db, "update component")
    db.refresh(component)
    return component
