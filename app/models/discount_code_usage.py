"""Discount code usage ledger."""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class DiscountCodeUsage(Base):
    """One redemption of a code by a user for a given order (one per user and code)."""

    __tablename__ = 'discount_code_usage'
    __table_args__ = (
        UniqueConstraint('user_id', 'discount_code_id', name='uq_discount_usage_user_code'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False, index=True)
    discount_code_id = Column(BigInteger, ForeignKey('discount_code.id'), nullable=False, index=True)
    order_id = Column(BigInteger, ForeignKey('quote_order.id'), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    discount_code = relationship('DiscountCode', back_populates='usages')
    order = relationship('Order')

    def __repr__(self):
        return f"<DiscountCodeUsage(user_id={self.user_id}, code_id={self.discount_code_id}, order_id={self.order_id})>"
