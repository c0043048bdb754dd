# backend/labstock/__init__.py
"""
Import ORM models from each app so that Alembic and
Base.metadata.create_all() see every table.
"""

from .apps.catalog import models as catalog_models    # components
from .apps.stock import models as stock_models        # stock ledger

__all__ = [
    "catalog_models",
    "stock_models",
]
