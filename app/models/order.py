"""Order model - a submitted quote request (Angebotsanfrage)."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, Numeric, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class OrderStatus(str, enum.Enum):
    """Order status enum."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


# Allowed status changes; delivered and cancelled are final.
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class Order(Base):
    """
    Quote request frozen from a cart.

    total_amount is the net total after per-item discounts and the discount
    code. Items are immutable once written; only status changes afterwards.
    """

    __tablename__ = 'quote_order'
    __table_args__ = (
        UniqueConstraint('user_id', 'idempotency_key', name='uq_order_user_idempotency_key'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False, index=True)
    order_number = Column(String(64), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)

    # Billing
    customer_name = Column(String(200), nullable=False)
    company_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    billing_address = Column(Text, nullable=False)
    billing_city = Column(String(120), nullable=False)
    billing_postal_code = Column(String(20), nullable=False)
    billing_country = Column(String(80), nullable=True)

    # Shipping (only meaningful if use_different_shipping)
    use_different_shipping = Column(Boolean, nullable=False, default=False)
    shipping_customer_name = Column(String(200), nullable=True)
    shipping_company_name = Column(String(200), nullable=True)
    shipping_phone = Column(String(50), nullable=True)
    shipping_address = Column(Text, nullable=True)
    shipping_city = Column(String(120), nullable=True)
    shipping_postal_code = Column(String(20), nullable=True)
    shipping_country = Column(String(80), nullable=True)

    notes = Column(Text, nullable=True)
    discount_code_id = Column(BigInteger, ForeignKey('discount_code.id'), nullable=True)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    # VAT on total_amount, rounded at submission (0 for margin-scheme-only orders)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)

    # Idempotency key to prevent duplicate orders on double-submit (unique per user)
    idempotency_key = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('AppUser')
    discount_code = relationship('DiscountCode')
    items = relationship('OrderItem', back_populates='order', order_by='OrderItem.id')
    history = relationship('OrderStatusHistory', back_populates='order', order_by='OrderStatusHistory.id')
    internal_notes = relationship('OrderNote', back_populates='order', order_by='OrderNote.id')

    @property
    def items_total(self):
        return sum((item.total_price for item in self.items), 0)

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}', total={self.total_amount})>"
