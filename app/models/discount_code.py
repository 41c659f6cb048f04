"""Discount code model."""
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, Numeric, Integer, DateTime, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class DiscountType(str, enum.Enum):
    """How discount_value is applied to the order net total."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class DiscountCode(Base):
    """
    Redeemable discount code.

    code is stored in its canonical uppercase form. current_uses only ever
    grows and is incremented with a conditional UPDATE (see
    discount_service.claim_discount_usage).
    """

    __tablename__ = 'discount_code'
    __table_args__ = (
        CheckConstraint('current_uses >= 0', name='ck_discount_code_uses_positive'),
        CheckConstraint('max_uses IS NULL OR current_uses <= max_uses', name='ck_discount_code_uses_cap'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    code = Column(String(64), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False, default=DiscountType.PERCENTAGE.value)
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_order_value = Column(Numeric(12, 2), nullable=False, default=0)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=False, default=datetime.utcnow)
    valid_until = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    usages = relationship('DiscountCodeUsage', back_populates='discount_code')

    def is_eligible(self, now):
        """Active, inside its validity window and not exhausted."""
        if not self.is_active:
            return False
        if self.valid_from and now < self.valid_from:
            return False
        if self.valid_until and now > self.valid_until:
            return False
        if self.max_uses is not None and self.current_uses >= self.max_uses:
            return False
        return True

    def __repr__(self):
        return f"<DiscountCode(id={self.id}, code='{self.code}', uses={self.current_uses}/{self.max_uses})>"
