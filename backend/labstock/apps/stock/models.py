from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ..catalog import models as catalog_models  # noqa: F401
from ...utils.dates import utcnow
from ...utils.identifiers import generate_uuid7


class MovementDirectionEnum(str, enum.Enum):
    INWARD = "inward"
    OUTWARD = "outward"


class StockLedgerEntry(Base):
    """
    Append-only record of one stock movement against one component.
    """

    __tablename__ = "stock_ledger"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_ledger_quantity_positive"),
        Index("ix_stock_ledger_component_time", "component_id", "occurred_at"),
        Index("ix_stock_ledger_direction_time", "direction", "occurred_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    component_id = Column(
        String(36),
        ForeignKey("components.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    direction = Column(
        SAEnum(MovementDirectionEnum, name="movement_direction_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    performed_by = Column(String(64), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    component = relationship("Component", lazy="joined")

    @property
    def signed_quantity(self) -> int:
        if self.direction == MovementDirectionEnum.OUTWARD:
            return -self.quantity
        return self.quantity

    def __repr__(self) -> str:
        return f"<StockLedgerEntry id={self.id} component={self.component_id} {self.direction.value} {self.quantity}>"
