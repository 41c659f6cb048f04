"""Models package - exports all SQLAlchemy models."""
# Identity
from app.models.app_user import AppUser, ApprovalStatus

# Catalog reference
from app.models.product import Product
from app.models.vehicle import Vehicle

# Discount codes
from app.models.discount_code import DiscountCode, DiscountType
from app.models.discount_code_usage import DiscountCodeUsage

# Quote requests
from app.models.order import Order, OrderStatus, STATUS_TRANSITIONS
from app.models.order_item import OrderItem, VEHICLE_NAME_PREFIX
from app.models.order_status_history import OrderStatusHistory
from app.models.order_note import OrderNote

__all__ = [
    'AppUser', 'ApprovalStatus',
    'Product', 'Vehicle',
    'DiscountCode', 'DiscountType', 'DiscountCodeUsage',
    'Order', 'OrderStatus', 'STATUS_TRANSITIONS',
    'OrderItem', 'VEHICLE_NAME_PREFIX', 'OrderStatusHistory', 'OrderNote',
]
