"""Order status history (audit trail of status changes)."""
from sqlalchemy import Column, BigInteger, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class OrderStatusHistory(Base):
    """One status change of an order. old_status is NULL for the initial entry."""

    __tablename__ = 'order_status_history'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('quote_order.id'), nullable=False, index=True)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    changed_by_name = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    order = relationship('Order', back_populates='history')

    def __repr__(self):
        return f"<OrderStatusHistory(order_id={self.order_id}, {self.old_status} -> {self.new_status})>"
