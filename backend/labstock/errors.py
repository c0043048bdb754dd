"""
Error kinds raised by the catalog, stock and analytics services.

Every error carries a stable ``kind`` that the presentation layer can show
verbatim, and the HTTP status the API maps it to.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class InventoryError(Exception):
    kind = "InventoryError"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class NotFound(InventoryError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ComponentNotFound(NotFound):
    def __init__(self, component_id: str) -> None:
        super().__init__(f"Component {component_id} not found.")
        self.component_id = component_id


class InvalidInput(InventoryError):
    kind = "InvalidInput"
    status_code = 422


class InsufficientStock(InventoryError):
    kind = "InsufficientStock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, *, component_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for outward movement: requested {requested}, available {available}."
        )
        self.component_id = component_id
        self.requested = requested
        self.available = available


class StoreUnavailable(InventoryError):
    kind = "StoreUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def setup_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError):
        return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request."
        return JSONResponse(
            content={"kind": InvalidInput.kind, "detail": message},
            status_code=InvalidInput.status_code,
        )
