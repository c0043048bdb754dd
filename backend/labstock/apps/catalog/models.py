from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)

from ...database import Base
from ...utils.dates import utcnow
from ...utils.identifiers import generate_uuid7


class ComponentCategoryEnum(str, enum.Enum):
    RESISTORS = "Resistors"
    CAPACITORS = "Capacitors"
    INDUCTORS = "Inductors"
    DIODES = "Diodes"
    TRANSISTORS = "Transistors"
    INTEGRATED_CIRCUITS = "Integrated Circuits"
    MICROCONTROLLERS = "Microcontrollers"
    SENSORS = "Sensors"
    CONNECTORS = "Connectors"
    SWITCHES_BUTTONS = "Switches/Buttons"
    LEDS_DISPLAYS = "LEDs/Displays"
    CABLES_WIRES = "Cables/Wires"
    MECHANICAL_PARTS = "Mechanical Parts"
    MISC_SUPPLIES = "Misc Supplies"


class Component(Base):
    """
    One distinct part in the lab catalog.

    ``current_quantity`` is a cache over the stock ledger and is written only
    by ``apps.stock.services``; catalog edits never touch it.
    """

    __tablename__ = "components"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_components_quantity_non_negative"),
        CheckConstraint("opening_quantity >= 0", name="ck_components_opening_non_negative"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_components_threshold_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_components_price_non_negative"),
        Index("ix_components_category_name", "category", "component_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    component_name = Column(String(255), nullable=False, index=True)
    part_number = Column(String(128), nullable=False, index=True)
    manufacturer = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(
        SAEnum(ComponentCategoryEnum, name="component_category_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    location_bin = Column(String(64), nullable=True)
    datasheet_link = Column(String(512), nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    low_stock_threshold = Column(Integer, nullable=False, default=0)

    opening_quantity = Column(Integer, nullable=False, default=0)
    current_quantity = Column(Integer, nullable=False, default=0)
    last_inward_date = Column(DateTime(timezone=True), nullable=True)
    last_outward_date = Column(DateTime(timezone=True), nullable=True, index=True)

    created_by = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.current_quantity < self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Component id={self.id} part={self.part_number} qty={self.current_quantity}>"
