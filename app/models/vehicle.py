"""Vehicle model (cars for sale)."""
from sqlalchemy import Column, String, Boolean, Numeric, Integer, DateTime, Date
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class Vehicle(Base):
    """
    Vehicle offered for sale. Always sold as a single unit.

    vat_margin_scheme: the price already accounts for VAT under the margin
    scheme (no VAT line is shown for this vehicle on its own).
    """

    __tablename__ = 'vehicle'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(64), nullable=True)
    brand = Column(String(80), nullable=False)
    model = Column(String(120), nullable=False)
    first_registration_date = Column(Date, nullable=True)
    mileage = Column(Integer, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    vat_margin_scheme = Column(Boolean, nullable=False, default=False)
    is_sold = Column(Boolean, nullable=False, default=False)
    is_reserved = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self):
        return f"{self.brand} {self.model}"

    @property
    def is_available(self):
        return self.deleted_at is None and not self.is_sold and not self.is_reserved

    def __repr__(self):
        return f"<Vehicle(id={self.id}, name='{self.display_name}', price={self.price})>"
