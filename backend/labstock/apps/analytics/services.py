"""
Read-only projections over the catalog and the stock ledger.

Everything here is recomputed on demand from the current rows; nothing is
cached between calls. Individual projections raise ``StoreUnavailable`` when
the store fails. The dashboard snapshot instead renders a failed projection
empty and logs a warning, so one bad query does not blank the whole page.
"""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labstock.apps.catalog import models as catalog_models
from labstock.apps.stock import models as stock_models
from labstock.apps.stock.services import coerce_direction
from labstock.errors import InvalidInput, StoreUnavailable
from labstock.utils.dates import as_utc, month_key, subtract_months, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


STALE_STOCK_MONTHS = _int_env("STALE_STOCK_MONTHS", 3)
MOVEMENT_HISTORY_DAYS = _int_env("MOVEMENT_HISTORY_DAYS", 365)
MOVEMENT_HISTORY_MAX_BUCKETS = _int_env("MOVEMENT_HISTORY_MAX_BUCKETS", 12)
DASHBOARD_TOP_N = _int_env("DASHBOARD_TOP_N", 5)


@dataclass
class MonthlyBucket:
    month: str
    quantity: int


@dataclass
class InventoryTotals:
    total_units: int = 0
    total_value: Decimal = Decimal("0.00")


@dataclass
class DashboardSnapshot:
    low_stock: List[catalog_models.Component] = field(default_factory=list)
    stale_stock: List[catalog_models.Component] = field(default_factory=list)
    monthly_inward: List[MonthlyBucket] = field(default_factory=list)
    monthly_outward: List[MonthlyBucket] = field(default_factory=list)
    totals: InventoryTotals = field(default_factory=InventoryTotals)


def _run_read(db: Session, projection: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Analytics read failed",
            extra={"projection": projection, "error": str(exc)},
        )
        raise StoreUnavailable(f"Database error while computing {projection}.") from exc


def _resolve_now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else utcnow()


def _check_limit(limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidInput("limit must be a non-negative whole number.")
    return limit


# ---------------------------------------------------------------------------
# PROJECTIONS
# ---------------------------------------------------------------------------


def list_low_stock(db: Session, limit: Optional[int] = None) -> List[catalog_models.Component]:
    """
    Components strictly below their low-stock threshold, by name.

    A component sitting exactly at its threshold is not low.
    """
    limit = _check_limit(limit)
    Component = catalog_models.Component

    def _query():
        query = (
            db.query(Component)
            .filter(Component.current_quantity < Component.low_stock_threshold)
            .order_by(Component.component_name.asc(), Component.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    return _run_read(db, "low stock", _query)


def list_stale_stock(
    db: Session,
    now: Optional[datetime] = None,
    months: int = STALE_STOCK_MONTHS,
    limit: Optional[int] = None,
) -> List[catalog_models.Component]:
    """
    Components with no outward movement within the last ``months`` calendar
    months. A component that has never been issued is always stale.
    """
    limit = _check_limit(limit)
    if isinstance(months, bool) or not isinstance(months, int) or months < 0:
        raise InvalidInput("months must be a non-negative whole number.")
    cutoff = subtract_months(_resolve_now(now), months)
    Component = catalog_models.Component

    def _query():
        query = (
            db.query(Component)
            .filter(
                or_(
                    Component.last_outward_date.is_(None),
                    Component.last_outward_date < cutoff,
                )
            )
            .order_by(Component.component_name.asc(), Component.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    return _run_read(db, "stale stock", _query)


def bucket_by_month(
    entries: Iterable[Tuple[datetime, int]],
    max_buckets: int = MOVEMENT_HISTORY_MAX_BUCKETS,
) -> List[MonthlyBucket]:
    """
    Sum ``(occurred_at, quantity)`` pairs per calendar month.

    Buckets are sorted ascending by ``YYYY-MM`` and only the most recent
    ``max_buckets`` are kept. Months with no entries are omitted.
    """
    totals: Dict[str, int] = defaultdict(int)
    for occurred_at, quantity in entries:
        totals[month_key(as_utc(occurred_at))] += quantity

    keys = sorted(totals)
    if max_buckets is not None:
        keys = keys[-max_buckets:] if max_buckets > 0 else []
    return [MonthlyBucket(month=key, quantity=totals[key]) for key in keys]


def monthly_movement_histogram(
    db: Session,
    direction: Union[stock_models.MovementDirectionEnum, str],
    now: Optional[datetime] = None,
    window_days: int = MOVEMENT_HISTORY_DAYS,
) -> List[MonthlyBucket]:
    direction = coerce_direction(direction)
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 0:
        raise InvalidInput("window_days must be a non-negative whole number.")

    since = _resolve_now(now) - timedelta(days=window_days)
    Entry = stock_models.StockLedgerEntry

    def _query():
        return (
            db.query(Entry.occurred_at, Entry.quantity)
            .filter(Entry.direction == direction, Entry.occurred_at >= since)
            .all()
        )

    rows = _run_read(db, f"monthly {direction.value} histogram", _query)
    return bucket_by_month(rows, MOVEMENT_HISTORY_MAX_BUCKETS)


def inventory_totals(db: Session) -> InventoryTotals:
    Component = catalog_models.Component

    def _query():
        return db.query(Component.current_quantity, Component.unit_price).all()

    rows = _run_read(db, "inventory totals", _query)
    totals = InventoryTotals()
    for quantity, unit_price in rows:
        totals.total_units += quantity
        totals.total_value += quantity * Decimal(str(unit_price or 0))
    totals.total_value = totals.total_value.quantize(Decimal("0.01"))
    return totals


# ---------------------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------------------


def _or_empty(projection: str, fn: Callable[[], T], empty: Callable[[], T]) -> T:
    try:
        return fn()
    except StoreUnavailable:
        logger.warning("Dashboard projection unavailable; rendering empty", extra={"projection": projection})
        return empty()


def get_dashboard_snapshot(db: Session, now: Optional[datetime] = None) -> DashboardSnapshot:
    now = _resolve_now(now)
    return DashboardSnapshot(
        low_stock=_or_empty("low stock", lambda: list_low_stock(db, limit=DASHBOARD_TOP_N), list),
        stale_stock=_or_empty(
            "stale stock",
            lambda: list_stale_stock(db, now=now, limit=DASHBOARD_TOP_N),
            list,
        ),
        monthly_inward=_or_empty(
            "monthly inward",
            lambda: monthly_movement_histogram(db, stock_models.MovementDirectionEnum.INWARD, now=now),
            list,
        ),
        monthly_outward=_or_empty(
            "monthly outward",
            lambda: monthly_movement_histogram(db, stock_models.MovementDirectionEnum.OUTWARD, now=now),
            list,
        ),
        totals=_or_empty("inventory totals", lambda: inventory_totals(db), InventoryTotals),
    )
