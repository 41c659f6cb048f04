"""OrderItem model for quote request line items."""
from sqlalchemy import Column, BigInteger, String, Numeric, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId

VEHICLE_NAME_PREFIX = 'Fahrzeug: '


class OrderItem(Base):
    """
    Order Item.

    Snapshot of the cart line at submission time. product_id is NULL for
    vehicle lines, whose product_name carries VEHICLE_NAME_PREFIX.
    total_price is always unit_price * quantity.
    """

    __tablename__ = 'order_item'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('quote_order.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    original_unit_price = Column(Numeric(14, 2), nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    total_price = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    order = relationship('Order', back_populates='items')

    @property
    def is_vehicle(self):
        return self.product_id is None

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, name='{self.product_name}', qty={self.quantity}, total={self.total_price})>"
