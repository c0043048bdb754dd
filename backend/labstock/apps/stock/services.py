from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labstock.apps.catalog import models as catalog_models
from labstock.errors import (
    ComponentNotFound,
    InsufficientStock,
    InvalidInput,
    InventoryError,
    StoreUnavailable,
)
from labstock.utils.dates import as_utc, utcnow

from . import models
from .locks import component_locks

logger = logging.getLogger(__name__)

DirectionLike = Union[models.MovementDirectionEnum, str]

REASON_MAX_LENGTH = models.StockLedgerEntry.__table__.c.reason.type.length
PERFORMER_MAX_LENGTH = models.StockLedgerEntry.__table__.c.performed_by.type.length

# Smallest step the stored timestamps keep.
_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return utcnow()


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput("quantity must be a whole number.")
    if quantity <= 0:
        raise InvalidInput("quantity must be greater than zero.")
    return quantity


def _validate_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise InvalidInput("reason is required for a stock movement.")
    if len(cleaned) > REASON_MAX_LENGTH:
        raise InvalidInput(f"reason must be at most {REASON_MAX_LENGTH} characters.")
    return cleaned


def _validate_performer(performed_by: Optional[str]) -> str:
    cleaned = (performed_by or "").strip()
    if not cleaned:
        raise InvalidInput("performed_by is required for a stock movement.")
    if len(cleaned) > PERFORMER_MAX_LENGTH:
        raise InvalidInput(f"performed_by must be at most {PERFORMER_MAX_LENGTH} characters.")
    return cleaned


def coerce_direction(direction: DirectionLike) -> models.MovementDirectionEnum:
    """Accept an enum member or its value in any case, e.g. ``"Inward"``."""
    if isinstance(direction, models.MovementDirectionEnum):
        return direction
    try:
        return models.MovementDirectionEnum(str(direction).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unknown movement direction {direction!r}; expected 'inward' or 'outward'.")


def _next_occurred_at(component: catalog_models.Component) -> datetime:
    """
    Timestamp for a new entry, strictly after every earlier entry of the
    component, so replay order matches commit order even if the clock
    stepped backward. Must be called while holding the component's row lock.
    """
    occurred_at = _utcnow()
    for previous in (as_utc(component.last_inward_date), as_utc(component.last_outward_date)):
        if previous is not None and occurred_at <= previous:
            occurred_at = previous + _TICK
    return occurred_at


# ---------------------------------------------------------------------------
# STOCK MUTATOR
# ---------------------------------------------------------------------------


def _lock_component_row(db: Session, component_id: str) -> Optional[catalog_models.Component]:
    return (
        db.query(catalog_models.Component)
        .filter(catalog_models.Component.id == component_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def _write_quantity(
    db: Session,
    *,
    component: catalog_models.Component,
    direction: models.MovementDirectionEnum,
    quantity: int,
    occurred_at: datetime,
) -> bool:
    """
    Apply the quantity delta with a guarded UPDATE.

    For outward movements the WHERE clause re-checks the balance, so a writer
    that slipped past the row lock cannot take the quantity below zero.
    Returns False when the guard rejected the write.
    """
    Component = catalog_models.Component
    query = db.query(Component).filter(Component.id == component.id)

    if direction == models.MovementDirectionEnum.OUTWARD:
        query = query.filter(Component.current_quantity >= quantity)
        values = {
            Component.current_quantity: Component.current_quantity - quantity,
            Component.last_outward_date: occurred_at,
        }
    else:
        values = {
            Component.current_quantity: Component.current_quantity + quantity,
            Component.last_inward_date: occurred_at,
        }
    values[Component.updated_at] = occurred_at

    return query.update(values, synchronize_session=False) == 1


def apply_movement(
    db: Session,
    *,
    component_id: str,
    direction: DirectionLike,
    quantity: int,
    reason: str,
    performed_by: str,
    notes: Optional[str] = None,
) -> models.StockLedgerEntry:
    """
    Record one stock movement and update the component's cached quantity.

    Validation order: the component must exist, then quantity, reason,
    performer and direction must be valid, then an outward movement must not
    exceed the quantity read under the lock. On success exactly one ledger
    entry is committed together with the quantity and last-movement date; on
    any failure the transaction is rolled back and nothing is written.
    """
    with component_locks.hold(component_id):
        try:
            component = _lock_component_row(db, component_id)
            if component is None:
                raise ComponentNotFound(component_id)

            quantity = _validate_quantity(quantity)
            reason = _validate_reason(reason)
            performed_by = _validate_performer(performed_by)
            direction = coerce_direction(direction)

            available = component.current_quantity
            if direction == models.MovementDirectionEnum.OUTWARD and quantity > available:
                raise InsufficientStock(component_id=component_id, requested=quantity, available=available)

            occurred_at = _next_occurred_at(component)
            if not _write_quantity(
                db,
                component=component,
                direction=direction,
                quantity=quantity,
                occurred_at=occurred_at,
            ):
                logger.warning(
                    "Guarded stock update rejected outward movement",
                    extra={"component_id": component_id, "requested": quantity, "available": available},
                )
                raise InsufficientStock(component_id=component_id, requested=quantity, available=available)

            entry = models.StockLedgerEntry(
                component_id=component_id,
                direction=direction,
                quantity=quantity,
                reason=reason,
                notes=(notes or "").strip() or None,
                performed_by=performed_by,
                occurred_at=occurred_at,
            )
            db.add(entry)
            db.commit()
        except InventoryError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Stock movement failed in the store",
                extra={"component_id": component_id, "error": str(exc)},
            )
            raise StoreUnavailable("Database error while recording stock movement.") from exc

        delta = quantity if direction == models.MovementDirectionEnum.INWARD else -quantity
        logger.info(
            "Stock movement recorded",
            extra={
                "component_id": component_id,
                "direction": direction.value,
                "quantity": quantity,
                "current_quantity": available + delta,
                "performed_by": performed_by,
            },
        )

        try:
            db.refresh(component)
            db.refresh(entry)
        except SQLAlchemyError as exc:
            logger.warning(
                "Stock movement committed but could not be reloaded",
                extra={"component_id": component_id, "error": str(exc)},
            )
            raise StoreUnavailable(
                "Stock movement was recorded but could not be reloaded; fetch the component again."
            ) from exc

    return entry


def receive_stock(
    db: Session,
    *,
    component_id: str,
    quantity: int,
    reason: str,
    performed_by: str,
    notes: Optional[str] = None,
) -> models.StockLedgerEntry:
    return apply_movement(
        db,
        component_id=component_id,
        direction=models.MovementDirectionEnum.INWARD,
        quantity=quantity,
        reason=reason,
        performed_by=performed_by,
        notes=notes,
    )


def issue_stock(
    db: Session,
    *,
    component_id: str,
    quantity: int,
    reason: str,
    performed_by: str,
    notes: Optional[str] = None,
) -> models.StockLedgerEntry:
    return apply_movement(
        db,
        component_id=component_id,
        direction=models.MovementDirectionEnum.OUTWARD,
        quantity=quantity,
        reason=reason,
        performed_by=performed_by,
        notes=notes,
    )


# ---------------------------------------------------------------------------
# LEDGER READS
# ---------------------------------------------------------------------------


def list_ledger_entries(
    db: Session,
    *,
    component_id: Optional[str] = None,
    direction: Optional[DirectionLike] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.StockLedgerEntry]:
    Entry = models.StockLedgerEntry
    query = db.query(Entry)
    if component_id:
        query = query.filter(Entry.component_id == component_id)
    if direction is not None:
        query = query.filter(Entry.direction == coerce_direction(direction))
    if start:
        query = query.filter(Entry.occurred_at >= as_utc(start))
    if end:
        query = query.filter(Entry.occurred_at <= as_utc(end))
    return query.order_by(Entry.occurred_at.desc(), Entry.id.desc()).offset(skip).limit(limit).all()


def component_history(db: Session, component_id: str) -> List[models.StockLedgerEntry]:
    """Ledger entries for one component in replay order."""
    Entry = models.StockLedgerEntry
    return (
        db.query(Entry)
        .filter(Entry.component_id == component_id)
        .order_by(Entry.occurred_at.asc(), Entry.id.asc())
        .all()
    )


@dataclass
class BalanceReport:
    component_id: str
    opening_quantity: int
    cached_quantity: int
    expected_quantity: int
    lowest_running_balance: int
    entry_count: int

    @property
    def is_consistent(self) -> bool:
        return self.cached_quantity == self.expected_quantity and self.lowest_running_balance >= 0


def verify_component_balance(db: Session, component_id: str) -> BalanceReport:
    """
    Replay a component's ledger from its opening quantity and compare the
    result with the cached on-hand quantity.
    """
    component = db.get(catalog_models.Component, component_id, populate_existing=True)
    if component is None:
        raise ComponentNotFound(component_id)

    running = component.opening_quantity
    lowest = running
    entries = component_history(db, component_id)
    for entry in entries:
        running += entry.signed_quantity
        lowest = min(lowest, running)

    return BalanceReport(
        component_id=component_id,
        opening_quantity=component.opening_quantity,
        cached_quantity=component.current_quantity,
        expected_quantity=running,
        lowest_running_balance=lowest,
        entry_count=len(entries),
    )
