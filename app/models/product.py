"""Product model (catalog reference, maintained by the back office)."""
from sqlalchemy import Column, String, Boolean, Numeric, Integer, DateTime, Text
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class Product(Base):
    """Sellable product. Prices are net (VAT excluded)."""

    __tablename__ = 'product'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    product_number = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(120), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=19)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    # 0 or less means "available on request" (no upper bound in the cart)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
