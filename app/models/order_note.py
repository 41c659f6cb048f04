"""Internal back-office notes on an order (never shown to the customer)."""
from sqlalchemy import Column, BigInteger, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class OrderNote(Base):
    """Free-text note by an admin. Only its author may edit or delete it."""

    __tablename__ = 'order_note'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('quote_order.id'), nullable=False, index=True)
    author_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    author_name = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    order = relationship('Order', back_populates='internal_notes')

    def __repr__(self):
        return f"<OrderNote(id={self.id}, order_id={self.order_id}, author_id={self.author_id})>"
