from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from labstock.apps.analytics import services as analytics_services
from labstock.apps.catalog import models as catalog_models
from labstock.apps.stock import models as stock_models
from labstock.apps.stock import services as stock_services
from labstock.errors import InvalidInput, StoreUnavailable

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _component(db, name: str, *, quantity: int = 0, threshold: int = 0, price: str = "0", last_outward=None):
    component = catalog_models.Component(
        component_name=name,
        part_number=name.upper().replace(" ", "-"),
        category=catalog_models.ComponentCategoryEnum.MISC_SUPPLIES,
        opening_quantity=quantity,
        current_quantity=quantity,
        low_stock_threshold=threshold,
        unit_price=Decimal(price),
        last_outward_date=last_outward,
        created_by="admin-1",
    )
    db.add(component)
    db.commit()
    return component


def _move(db, monkeypatch, component, direction, quantity, when):
    monkeypatch.setattr(stock_services, "_utcnow", lambda: when)
    stock_services.apply_movement(
        db,
        component_id=component.id,
        direction=direction,
        quantity=quantity,
        reason="test",
        performed_by="user-1",
    )


def test_low_stock_is_strictly_below_threshold(db_session):
    _component(db_session, "Solder", quantity=2, threshold=5)
    _component(db_session, "Flux", quantity=5, threshold=5)
    _component(db_session, "Braid", quantity=0, threshold=1)
    _component(db_session, "Tape", quantity=9, threshold=0)

    names = [c.component_name for c in analytics_services.list_low_stock(db_session)]
    assert names == ["Braid", "Solder"]

    limited = analytics_services.list_low_stock(db_session, limit=1)
    assert [c.component_name for c in limited] == ["Braid"]


def test_low_stock_rejects_negative_limit(db_session):
    with pytest.raises(InvalidInput):
        analytics_services.list_low_stock(db_session, limit=-1)


def test_stale_stock_includes_never_issued_and_old_outward(db_session):
    _component(db_session, "Never issued")
    _component(db_session, "Old", last_outward=NOW - timedelta(days=120))
    _component(db_session, "Recent", last_outward=NOW - timedelta(days=10))
    _component(db_session, "Edge", last_outward=datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))

    stale = analytics_services.list_stale_stock(db_session, now=NOW)
    assert [c.component_name for c in stale] == ["Never issued", "Old"]

    wider = analytics_services.list_stale_stock(db_session, now=NOW, months=1)
    assert [c.component_name for c in wider] == ["Edge", "Never issued", "Old"]


def test_monthly_histogram_is_sparse_and_sorted(db_session, monkeypatch):
    part = _component(db_session, "Header pins", quantity=100)
    # Outside the trailing window.
    _move(db_session, monkeypatch, part, "outward", 9, datetime(2023, 5, 1, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "outward", 5, datetime(2024, 1, 10, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "outward", 3, datetime(2024, 1, 20, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "inward", 40, datetime(2024, 2, 1, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "outward", 2, datetime(2024, 3, 4, tzinfo=timezone.utc))

    outward = analytics_services.monthly_movement_histogram(db_session, "outward", now=NOW)
    assert [(b.month, b.quantity) for b in outward] == [("2024-01", 8), ("2024-03", 2)]

    inward = analytics_services.monthly_movement_histogram(
        db_session, stock_models.MovementDirectionEnum.INWARD, now=NOW
    )
    assert [(b.month, b.quantity) for b in inward] == [("2024-02", 40)]


def test_monthly_histogram_rejects_unknown_direction(db_session):
    with pytest.raises(InvalidInput):
        analytics_services.monthly_movement_histogram(db_session, "sideways", now=NOW)


def test_bucket_by_month_keeps_most_recent_buckets():
    entries = [(datetime(2023, month, 1, tzinfo=timezone.utc), month) for month in range(1, 13)]
    entries.append((datetime(2024, 1, 31, tzinfo=timezone.utc), 7))
    entries.append((datetime(2024, 1, 2, tzinfo=timezone.utc), 1))

    buckets = analytics_services.bucket_by_month(entries, max_buckets=12)

    assert len(buckets) == 12
    assert buckets[0].month == "2023-02"
    assert buckets[-1].month == "2024-01"
    assert buckets[-1].quantity == 8


def test_bucket_by_month_empty():
    assert analytics_services.bucket_by_month([], max_buckets=12) == []


def test_inventory_totals(db_session):
    _component(db_session, "Resistor", quantity=10, price="0.25")
    _component(db_session, "Arduino", quantity=2, price="23.50")
    _component(db_session, "Empty", quantity=0, price="99.99")

    totals = analytics_services.inventory_totals(db_session)

    assert totals.total_units == 12
    assert totals.total_value == Decimal("49.50")


def test_inventory_totals_empty_catalog(db_session):
    totals = analytics_services.inventory_totals(db_session)
    assert totals.total_units == 0
    assert totals.total_value == Decimal("0.00")


def test_dashboard_snapshot_limits_lists(db_session, monkeypatch):
    monkeypatch.setattr(analytics_services, "DASHBOARD_TOP_N", 2)
    for index in range(4):
        _component(db_session, f"Part {index}", quantity=0, threshold=3, price="1.00")

    snapshot = analytics_services.get_dashboard_snapshot(db_session, now=NOW)

    assert [c.component_name for c in snapshot.low_stock] == ["Part 0", "Part 1"]
    assert [c.component_name for c in snapshot.stale_stock] == ["Part 0", "Part 1"]
    assert snapshot.monthly_inward == []
    assert snapshot.monthly_outward == []
    assert snapshot.totals.total_units == 0


class _BrokenQuery:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        return _fail


class _BrokenSession:
    def __init__(self):
        self.rollbacks = 0

    def query(self, *args, **kwargs):
        return _BrokenQuery()

    def rollback(self):
        self.rollbacks += 1


def test_individual_projection_raises_store_unavailable():
    with pytest.raises(StoreUnavailable) as excinfo:
        analytics_services.list_low_stock(_BrokenSession())
    assert excinfo.value.status_code == 503


def test_dashboard_renders_failed_projections_empty(caplog):
    session = _BrokenSession()

    with caplog.at_level("WARNING", logger="labstock.apps.analytics.services"):
        snapshot = analytics_services.get_dashboard_snapshot(session, now=NOW)

    assert snapshot.low_stock == []
    assert snapshot.stale_stock == []
    assert snapshot.monthly_inward == []
    assert snapshot.monthly_outward == []
    assert snapshot.totals.total_units == 0
    assert snapshot.totals.total_value == Decimal("0.00")
    assert session.rollbacks == 5
    assert "Dashboard projection unavailable" in caplog.text


def test_inward_histogram_skips_empty_months(db_session, monkeypatch):
    part = _component(db_session, "Jumper wires")
    _move(db_session, monkeypatch, part, "inward", 5, datetime(2024, 1, 10, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "inward", 3, datetime(2024, 1, 20, tzinfo=timezone.utc))
    _move(db_session, monkeypatch, part, "inward", 2, datetime(2024, 3, 1, tzinfo=timezone.utc))

    buckets = analytics_services.monthly_movement_histogram(db_session, "inward", now=NOW)

    assert [{b.month: b.quantity} for b in buckets] == [{"2024-01": 8}, {"2024-03": 2}]


def test_histogram_direction_is_case_insensitive(db_session, monkeypatch):
    part = _component(db_session, "Heat shrink")
    _move(db_session, monkeypatch, part, "inward", 4, datetime(2024, 5, 2, tzinfo=timezone.utc))

    buckets = analytics_services.monthly_movement_histogram(db_session, "Inward", now=NOW)

    assert [(b.month, b.quantity) for b in buckets] == [("2024-05", 4)]
