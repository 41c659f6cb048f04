"""
Order submission - freezes a cart into a persisted quote request.

Transaction boundary:
    1. totals, 2. order row, 3. order items (+ discount counter claim)
    are one database transaction. Nothing is written if any of them fails.
After commit, two best-effort side effects run:
    4. discount usage ledger entry, 5. customer notification.
Their failures are logged and reported as BestEffortOutcome, never raised.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import (
    AppUser, DiscountCode, Order, OrderItem, OrderStatus, OrderStatusHistory,
    VEHICLE_NAME_PREFIX
)
from app.exceptions import (
    PortalError, BusinessLogicError, ValidationError, NotFoundError,
    AuthenticationRequiredError, UnauthorizedError, InvalidDiscountCodeError,
    DuplicateSubmissionError, OrderPersistenceError
)
from app.services import discount_service, email_service
from app.services.cart_service import AppliedDiscount, Cart
from app.services.pricing_service import CartTotals, calculate_totals, VAT_RATE
from app.utils.formatters import round_money, money_str

logger = logging.getLogger(__name__)

REQUIRED_BILLING_FIELDS = ('customer_name', 'billing_address', 'billing_city', 'billing_postal_code')
REQUIRED_SHIPPING_FIELDS = ('shipping_customer_name', 'shipping_address', 'shipping_city', 'shipping_postal_code')
MAX_IDEMPOTENCY_KEY_LENGTH = 64


@dataclass(frozen=True)
class CheckoutDetails:
    """Billing/shipping data entered at checkout."""
    customer_name: str = ''
    billing_address: str = ''
    billing_city: str = ''
    billing_postal_code: str = ''
    billing_country: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    use_different_shipping: bool = False
    shipping_customer_name: Optional[str] = None
    shipping_company_name: Optional[str] = None
    shipping_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> 'CheckoutDetails':
        values = {}
        for name in cls.__dataclass_fields__:
            if name not in data:
                continue
            value = data[name]
            if name == 'use_different_shipping':
                value = value in (True, 'true', 'True', '1', 'on', 1)
            elif isinstance(value, str):
                value = value.strip()
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class BestEffortOutcome:
    """Result of a post-commit side effect. Never turns into a submission failure."""
    name: str
    succeeded: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class OrderSubmissionResult:
    """Committed order. side_effects only describe what happened afterwards."""
    order_id: int
    order_number: str
    total_amount: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    totals: CartTotals
    side_effects: Tuple[BestEffortOutcome, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'order_id': self.order_id,
            'order_number': self.order_number,
            'total_amount': money_str(self.total_amount),
            'discount_amount': money_str(self.discount_amount),
            'tax_amount': money_str(self.tax_amount),
            'gross_amount': money_str(self.total_amount + self.tax_amount),
            'totals': self.totals.to_dict(),
        }


# =====================================================
# VALIDATION
# =====================================================

def authorize_submission(user: Optional[AppUser]) -> AppUser:
    """Anonymous and non-approved customers may not submit (admins may)."""
    if user is None:
        raise AuthenticationRequiredError()
    if not user.can_request_quotes:
        raise UnauthorizedError('Ihr Konto ist noch nicht freigeschaltet.')
    return user


def _has_first_and_last_name(value: Optional[str]) -> bool:
    return len((value or '').split()) >= 2


def validate_checkout_details(details: CheckoutDetails) -> None:
    """Server-side re-check of the checkout form. Raises ValidationError with field messages."""
    errors: Dict[str, List[str]] = {}

    for name in REQUIRED_BILLING_FIELDS:
        if not getattr(details, name):
            errors.setdefault(name, []).append('Pflichtfeld')

    if details.customer_name and not _has_first_and_last_name(details.customer_name):
        errors.setdefault('customer_name', []).append('Bitte Vor- und Nachnamen angeben')

    if details.use_different_shipping:
        for name in REQUIRED_SHIPPING_FIELDS:
            if not getattr(details, name):
                errors.setdefault(name, []).append('Pflichtfeld')
        if details.shipping_customer_name and not _has_first_and_last_name(details.shipping_customer_name):
            errors.setdefault('shipping_customer_name', []).append('Bitte Vor- und Nachnamen angeben')

    if errors:
        raise ValidationError(errors=errors)


def _shipping_columns(details: CheckoutDetails) -> Dict[str, Any]:
    """Shipping falls back to the billing address when no separate address is given."""
    if details.use_different_shipping:
        return {
            'shipping_customer_name': details.shipping_customer_name,
            'shipping_company_name': details.shipping_company_name,
            'shipping_phone': details.shipping_phone,
            'shipping_address': details.shipping_address,
            'shipping_city': details.shipping_city,
            'shipping_postal_code': details.shipping_postal_code,
            'shipping_country': details.shipping_country,
        }
    return {
        'shipping_customer_name': details.customer_name,
        'shipping_company_name': details.company_name,
        'shipping_phone': details.phone,
        'shipping_address': details.billing_address,
        'shipping_city': details.billing_city,
        'shipping_postal_code': details.billing_postal_code,
        'shipping_country': details.billing_country,
    }


# =====================================================
# ORDER CONSTRUCTION
# =====================================================

def generate_order_number(session: Session, prefix: str = 'ANF', now: Optional[datetime] = None) -> str:
    """Generate a unique, human-readable order number, e.g. ANF-20261019-143005-0003."""
    now = now or datetime.now()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    count = session.query(Order).filter(Order.created_at >= today_start).count()
    return f"{prefix}-{now.strftime('%Y%m%d-%H%M%S')}-{str(count + 1).zfill(4)}"


def build_order_items(totals: CartTotals) -> List[Dict[str, Any]]:
    """
    OrderItem rows from a totals breakdown, rounded to cents.

    total_price is computed from the rounded unit_price so that
    total_price == unit_price * quantity holds exactly.
    """
    items = []
    for line in totals.lines:
        unit_price = round_money(line.discounted_unit_price)
        is_vehicle = line.kind == 'vehicle'
        items.append({
            'product_id': None if is_vehicle else line.item_id,
            'product_name': f"{VEHICLE_NAME_PREFIX}{line.name}" if is_vehicle else line.name,
            'quantity': 1 if is_vehicle else line.quantity,
            'unit_price': unit_price,
            'original_unit_price': round_money(line.unit_net_price),
            'discount_percentage': line.discount_percentage,
            'total_price': unit_price * (1 if is_vehicle else line.quantity),
        })
    return items


def persisted_amounts(items: List[Dict[str, Any]], code_discount: Decimal) -> Tuple[Decimal, Decimal]:
    """(total_amount, discount_amount) so that sum(total_price) - discount_amount == total_amount."""
    items_total = sum((item['total_price'] for item in items), Decimal('0'))
    discount_amount = min(round_money(code_discount), items_total)
    return items_total - discount_amount, discount_amount


def _find_by_idempotency_key(session: Session, user_id: int, key: Optional[str]) -> Optional[Order]:
    """Keys are chosen by the client, so they are only meaningful per user."""
    if not key:
        return None
    return session.query(Order).filter(Order.user_id == user_id, Order.idempotency_key == key).first()


def _run_best_effort(name: str, action: Callable[[], Any]) -> BestEffortOutcome:
    """Run a post-commit side effect; log failures, never raise, never retry."""
    try:
        result = action()
        if result is False:
            logger.error(f"[ORDER] best-effort step '{name}' reported failure")
            return BestEffortOutcome(name=name, succeeded=False, error='reported failure')
        return BestEffortOutcome(name=name, succeeded=True)
    except Exception as e:
        logger.error(f"[ORDER] best-effort step '{name}' failed: {e}", exc_info=True)
        return BestEffortOutcome(name=name, succeeded=False, error=str(e))


# =====================================================
# SUBMISSION
# =====================================================

def submit_order(
    session: Session,
    user: Optional[AppUser],
    cart: Cart,
    details: CheckoutDetails,
    idempotency_key: Optional[str] = None,
    vat_rate: Decimal = VAT_RATE,
    order_number_prefix: str = 'ANF',
    notify: Optional[Callable[..., bool]] = None
) -> OrderSubmissionResult:
    """
    Turn the cart into a persisted Order with immutable OrderItems.

    The applied discount held by the cart is only used to identify the code;
    its eligibility and value are re-read from the database and the usage
    counter is claimed atomically inside the order transaction.
    On success the cart is cleared.
    """
    user = authorize_submission(user)

    if cart.is_empty:
        raise BusinessLogicError('Der Warenkorb ist leer.')

    validate_checkout_details(details)

    if idempotency_key and len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(errors={'idempotency_key': ['Zu lang']})

    existing = _find_by_idempotency_key(session, user.id, idempotency_key)
    if existing:
        raise DuplicateSubmissionError(existing.order_number)

    # 1. Totals (the client-held discount snapshot is never trusted)
    totals = calculate_totals(cart.lines.values(), cart.vehicles.values(), None, vat_rate=vat_rate)
    discount_code: Optional[DiscountCode] = None
    if cart.applied_discount is not None:
        discount_code = discount_service.check_eligibility(
            session, cart.applied_discount.code, user.id, totals.pre_code_net_total
        )
        totals = calculate_totals(
            cart.lines.values(),
            cart.vehicles.values(),
            AppliedDiscount.from_model(discount_code),
            vat_rate=vat_rate
        )

    items_data = build_order_items(totals)
    total_amount, discount_amount = persisted_amounts(items_data, totals.code_discount)
    # VAT of the persisted net, so that net + tax == gross in cents
    tax_amount = round_money(total_amount * vat_rate / Decimal(100)) if totals.tax_total else Decimal('0.00')

    try:
        # 2. Order
        order = Order(
            user_id=user.id,
            order_number=generate_order_number(session, order_number_prefix),
            status=OrderStatus.PENDING.value,
            total_amount=total_amount,
            customer_name=details.customer_name,
            company_name=details.company_name or None,
            phone=details.phone or None,
            billing_address=details.billing_address,
            billing_city=details.billing_city,
            billing_postal_code=details.billing_postal_code,
            billing_country=details.billing_country or None,
            use_different_shipping=details.use_different_shipping,
            notes=details.notes or None,
            discount_code_id=discount_code.id if discount_code else None,
            discount_amount=discount_amount,
            tax_amount=tax_amount,
            idempotency_key=idempotency_key or None,
            **_shipping_columns(details)
        )
        session.add(order)
        session.flush()

        # 3. Items
        for item in items_data:
            session.add(OrderItem(order_id=order.id, **item))

        session.add(OrderStatusHistory(
            order_id=order.id,
            old_status=None,
            new_status=OrderStatus.PENDING.value,
            changed_by=user.id,
            changed_by_name=user.full_name or user.email,
        ))

        if discount_code is not None and not discount_service.claim_discount_usage(session, discount_code.id):
            raise InvalidDiscountCodeError('Der Rabattcode wurde inzwischen vollständig eingelöst.')

        session.commit()
        order_id, order_number = order.id, order.order_number

    except PortalError:
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        existing = _find_by_idempotency_key(session, user.id, idempotency_key)
        if existing:
            raise DuplicateSubmissionError(existing.order_number)
        logger.error(f"[ORDER] integrity error for user {user.id}: {e}")
        raise OrderPersistenceError()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[ORDER] failed to persist order for user {user.id}: {e}", exc_info=True)
        raise OrderPersistenceError()

    logger.info(
        f"[ORDER] {order_number} created: user={user.id} items={len(items_data)} "
        f"total={total_amount} discount={discount_amount}"
    )

    # 4. Usage ledger (strictly after the order exists)
    side_effects = []
    if discount_code is not None:
        code_id = discount_code.id
        side_effects.append(_run_best_effort(
            'record_discount_usage',
            lambda: discount_service.record_discount_usage(session, user.id, code_id, order_id)
        ))

    # 5. Notification
    notify = notify or email_service.send_order_created_email
    notification_totals = {
        'net_total': total_amount,
        'discount_amount': discount_amount,
        'tax_total': tax_amount,
        'gross_total': total_amount + tax_amount,
    }
    side_effects.append(_run_best_effort(
        'notify_order_created',
        lambda: notify(user.email, details.customer_name, order_number, items_data, notification_totals)
    ))

    # 6. Done
    cart.clear()

    return OrderSubmissionResult(
        order_id=order_id,
        order_number=order_number,
        total_amount=total_amount,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        totals=totals,
        side_effects=tuple(side_effects),
    )


# =====================================================
# READ SIDE
# =====================================================

def get_order_for_user(session: Session, order_id: int, user: AppUser) -> Order:
    """Own orders for customers, any order for admins."""
    query = session.query(Order).filter(Order.id == order_id)
    if not user.is_admin:
        query = query.filter(Order.user_id == user.id)
    order = query.first()
    if not order:
        raise NotFoundError(f'Anfrage {order_id} nicht gefunden.')
    return order


def list_orders_for_user(session: Session, user: AppUser) -> List[Order]:
    return session.query(Order).filter(Order.user_id == user.id).order_by(Order.created_at.desc(), Order.id.desc()).all()


def serialize_order(order: Order, with_items: bool = True) -> Dict[str, Any]:
    data = {
        'id': order.id,
        'order_number': order.order_number,
        'status': order.status,
        'total_amount': money_str(order.total_amount),
        'discount_amount': money_str(order.discount_amount),
        'tax_amount': money_str(order.tax_amount),
        'gross_amount': money_str((order.total_amount or 0) + (order.tax_amount or 0)),
        'discount_code': order.discount_code.code if order.discount_code else None,
        'customer_name': order.customer_name,
        'company_name': order.company_name,
        'billing_address': order.billing_address,
        'billing_city': order.billing_city,
        'billing_postal_code': order.billing_postal_code,
        'use_different_shipping': order.use_different_shipping,
        'shipping_address': order.shipping_address,
        'shipping_city': order.shipping_city,
        'shipping_postal_code': order.shipping_postal_code,
        'notes': order.notes,
        'created_at': order.created_at.isoformat() if order.created_at else None,
    }
    if with_items:
        data['items'] = [
            {
                'product_id': item.product_id,
                'product_name': item.product_name,
                'is_vehicle': item.is_vehicle,
                'quantity': item.quantity,
                'unit_price': money_str(item.unit_price),
                'original_unit_price': money_str(item.original_unit_price) if item.original_unit_price is not None else None,
                'discount_percentage': str(item.discount_percentage) if item.discount_percentage is not None else None,
                'total_price': money_str(item.total_price),
            }
            for item in order.items
        ]
    return data
