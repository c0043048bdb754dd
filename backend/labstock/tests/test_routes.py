from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from labstock import main, security
from labstock.apps.analytics import router as analytics_router
from labstock.apps.catalog import models as catalog_models
from labstock.apps.catalog import router as catalog_router
from labstock.apps.catalog import schemas as catalog_schemas
from labstock.apps.stock import router as stock_router
from labstock.apps.stock import schemas as stock_schemas
from labstock.errors import InsufficientStock, InvalidInput, InventoryError

ADMIN = security.Principal(id="admin-1", is_admin=True)
MEMBER = security.Principal(id="member-1")


def _paths():
    return {(route.path, method) for route in main.app.routes for method in getattr(route, "methods", set())}


def _request() -> Request:
    return Request({"type": "http", "headers": [], "method": "GET", "path": "/"})


def test_app_exposes_inventory_routes():
    paths = _paths()
    for expected in [
        ("/", "GET"),
        ("/health", "GET"),
        ("/components", "GET"),
        ("/components", "POST"),
        ("/components/{component_id}", "GET"),
        ("/components/{component_id}", "PATCH"),
        ("/components/{component_id}/balance", "GET"),
        ("/stock/movements", "POST"),
        ("/stock/receive", "POST"),
        ("/stock/issue", "POST"),
        ("/stock/ledger", "GET"),
        ("/analytics/low-stock", "GET"),
        ("/analytics/stale-stock", "GET"),
        ("/analytics/monthly/{direction}", "GET"),
        ("/analytics/totals", "GET"),
        ("/analytics/dashboard", "GET"),
    ]:
        assert expected in paths


def test_health_routes():
    assert main.health() == {"status": "ok"}
    assert main.read_root()["status"] == "ok"


def test_allowed_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://lab.example.com, ,http://localhost:3000")
    assert main._allowed_origins() == ["https://lab.example.com", "http://localhost:3000"]


def test_catalog_and_stock_endpoints_record_principal(db_session):
    created = catalog_router.create_component(
        payload=catalog_schemas.ComponentCreate(
            component_name="Servo",
            part_number="SG90",
            category=catalog_models.ComponentCategoryEnum.MECHANICAL_PARTS,
            initial_quantity=6,
        ),
        db=db_session,
        principal=ADMIN,
    )
    assert created.created_by == "admin-1"

    entry = stock_router.issue_stock(
        payload=stock_schemas.IssueRequest(component_id=created.id, quantity=2, reason="Robot arm"),
        db=db_session,
        principal=MEMBER,
    )
    assert entry.performed_by == "member-1"

    fetched = catalog_router.get_component(created.id, db=db_session, principal=MEMBER)
    assert fetched.current_quantity == 4

    report = stock_router.verify_balance(created.id, db=db_session, principal=ADMIN)
    assert report.is_consistent is True
    assert report.expected_quantity == 4

    ledger = stock_router.list_ledger(
        component_id=created.id,
        direction=None,
        start=None,
        end=None,
        skip=0,
        limit=100,
        db=db_session,
        principal=MEMBER,
    )
    assert [e.id for e in ledger] == [entry.id]


def test_analytics_endpoints_serialise(db_session):
    catalog_router.create_component(
        payload=catalog_schemas.ComponentCreate(
            component_name="Thermistor",
            part_number="NTC-10K",
            category=catalog_models.ComponentCategoryEnum.SENSORS,
            initial_quantity=1,
            low_stock_threshold=3,
            unit_price="1.20",
        ),
        db=db_session,
        principal=ADMIN,
    )

    totals = analytics_router.totals(db=db_session, principal=MEMBER)
    assert totals.total_units == 1

    dashboard = analytics_router.dashboard(db=db_session, principal=MEMBER)
    assert [c.part_number for c in dashboard.low_stock] == ["NTC-10K"]
    assert dashboard.totals.total_value == totals.total_value


def test_access_token_round_trip():
    token = security.create_access_token(principal_id="user-7", is_admin=True)
    principal = security.get_current_principal(token)
    assert principal == security.Principal(id="user-7", is_admin=True)


def test_expired_or_garbled_token_is_rejected():
    expired = security.create_access_token(principal_id="user-7", expires_delta=timedelta(minutes=-5))
    for token in (expired, "not-a-token"):
        with pytest.raises(HTTPException) as excinfo:
            security.get_current_principal(token)
        assert excinfo.value.status_code == 401


def test_require_admin_blocks_members():
    assert security.require_admin(ADMIN) is ADMIN
    with pytest.raises(HTTPException) as excinfo:
        security.require_admin(MEMBER)
    assert excinfo.value.status_code == 403


def test_inventory_error_handler_renders_kind_and_detail():
    handler = main.app.exception_handlers[InventoryError]
    exc = InsufficientStock(component_id="c-1", requested=7, available=3)

    response = asyncio.run(handler(_request(), exc))

    assert response.status_code == 409
    body = json.loads(response.body)
    assert body["kind"] == "InsufficientStock"
    assert "requested 7" in body["detail"]


def test_invalid_input_renders_as_422():
    handler = main.app.exception_handlers[InventoryError]

    response = asyncio.run(handler(_request(), InvalidInput("reason is required for a stock movement.")))

    assert InvalidInput.status_code == 422
    assert response.status_code == 422
    assert json.loads(response.body) == {
        "kind": "InvalidInput",
        "detail": "reason is required for a stock movement.",
    }
