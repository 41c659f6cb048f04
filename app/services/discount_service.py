"""
Discount code service.

Eligibility is decided here, against the database, never from values the
client holds. The usage counter is only ever incremented through
claim_discount_usage, a single conditional UPDATE, so concurrent
redemptions cannot push current_uses past max_uses.
"""
import logging
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy import update, or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import DiscountCode, DiscountCodeUsage, DiscountType
from app.exceptions import (
    BusinessLogicError, NotFoundError, ValidationError,
    InvalidDiscountCodeError, DiscountCodeAlreadyUsedError,
    MinimumOrderValueNotMetError, DiscountNotAuthorizedError
)
from app.services.cart_service import AppliedDiscount

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how validity windows are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_code(code: Optional[str]) -> str:
    """Canonical form of a code: trimmed, uppercase."""
    return (code or '').strip().upper()


def generate_code(length: int = CODE_LENGTH) -> str:
    """Random code such as 'K7Q2ZP9A'."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def get_discount_code(session: Session, code: str) -> Optional[DiscountCode]:
    """Case-insensitive lookup by code."""
    canonical = normalize_code(code)
    if not canonical:
        return None
    return session.query(DiscountCode).filter(DiscountCode.code == canonical).first()


def has_user_redeemed(session: Session, user_id: int, discount_code_id: int) -> bool:
    return session.query(DiscountCodeUsage.id).filter(
        DiscountCodeUsage.user_id == user_id,
        DiscountCodeUsage.discount_code_id == discount_code_id
    ).first() is not None


def check_eligibility(
    session: Session,
    code: str,
    user_id: int,
    net_total: Decimal,
    now: Optional[datetime] = None
) -> DiscountCode:
    """
    Return the DiscountCode if `user_id` may redeem it on an order of `net_total`.

    Raises InvalidDiscountCodeError, DiscountCodeAlreadyUsedError or
    MinimumOrderValueNotMetError.
    """
    now = now or utcnow()
    discount_code = get_discount_code(session, code)

    if discount_code is None or not discount_code.is_eligible(now):
        raise InvalidDiscountCodeError()

    if has_user_redeemed(session, user_id, discount_code.id):
        raise DiscountCodeAlreadyUsedError()

    min_order_value = Decimal(str(discount_code.min_order_value or 0))
    if net_total < min_order_value:
        raise MinimumOrderValueNotMetError(min_order_value)

    return discount_code


def validate_discount_code(
    session: Session,
    code: str,
    order_net_total: Decimal,
    requesting_user_id: Optional[int],
    cart_owner_id: Optional[int],
    now: Optional[datetime] = None
) -> AppliedDiscount:
    """
    Check a code for the requesting user's cart and return the snapshot to apply.

    Read only: nothing is counted until the order is submitted.
    """
    if requesting_user_id is None or requesting_user_id != cart_owner_id:
        raise DiscountNotAuthorizedError()

    if not normalize_code(code):
        raise ValidationError('Bitte geben Sie einen Rabattcode ein.', {'code': ['Pflichtfeld']})

    order_net_total = Decimal(str(order_net_total))
    if order_net_total < 0:
        raise ValidationError('Ungültiger Bestellwert.', {'order_net_total': ['darf nicht negativ sein']})

    discount_code = check_eligibility(session, code, requesting_user_id, order_net_total, now=now)
    logger.info(f"[DISCOUNT] code {discount_code.code} validated for user {requesting_user_id}")
    return AppliedDiscount.from_model(discount_code)


def claim_discount_usage(session: Session, discount_code_id: int, now: Optional[datetime] = None) -> bool:
    """
    Atomically count one redemption.

    Single conditional UPDATE (compare-and-increment): succeeds only while
    the code is active, inside its window and below max_uses. Runs inside
    the caller's transaction; returns False when the code is exhausted.
    """
    now = now or utcnow()
    stmt = (
        update(DiscountCode)
        .where(
            DiscountCode.id == discount_code_id,
            DiscountCode.is_active.is_(True),
            DiscountCode.valid_from <= now,
            or_(DiscountCode.valid_until.is_(None), DiscountCode.valid_until >= now),
            or_(
                DiscountCode.max_uses.is_(None),
                and_(DiscountCode.max_uses.isnot(None), DiscountCode.current_uses < DiscountCode.max_uses)
            )
        )
        .values(current_uses=DiscountCode.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    return result.rowcount == 1


def record_discount_usage(session: Session, user_id: int, discount_code_id: int, order_id: int) -> DiscountCodeUsage:
    """Write the usage ledger entry for a committed order (own transaction)."""
    try:
        usage = DiscountCodeUsage(user_id=user_id, discount_code_id=discount_code_id, order_id=order_id)
        session.add(usage)
        session.commit()
        logger.info(f"[DISCOUNT] usage recorded: user={user_id} code={discount_code_id} order={order_id}")
        return usage
    except SQLAlchemyError:
        session.rollback()
        raise


# =====================================================
# BACK OFFICE
# =====================================================

def _coerce_code_fields(data: Dict[str, Any], current: Optional[DiscountCode] = None) -> Dict[str, Any]:
    """
    Validate and normalise admin input for a discount code.

    `current` is the stored code on updates; a window bound that is not in
    `data` is checked against its stored value.
    """
    errors = {}
    fields = {}

    if 'code' in data:
        fields['code'] = normalize_code(data['code'])
        if not fields['code']:
            errors['code'] = ['Pflichtfeld']

    if 'discount_type' in data:
        if data['discount_type'] not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
            errors['discount_type'] = ['Ungültiger Rabatttyp']
        fields['discount_type'] = data['discount_type']

    for key in ('discount_value', 'min_order_value'):
        if key in data and data[key] is not None:
            value = Decimal(str(data[key]))
            if value < 0:
                errors[key] = ['Darf nicht negativ sein']
            fields[key] = value

    if 'max_uses' in data:
        max_uses = data['max_uses']
        if max_uses is not None and int(max_uses) < 1:
            errors['max_uses'] = ['Muss mindestens 1 sein']
        fields['max_uses'] = int(max_uses) if max_uses is not None else None

    for key in ('description', 'valid_from', 'valid_until', 'is_active'):
        if key in data:
            fields[key] = data[key]

    discount_type = fields.get('discount_type')
    value = fields.get('discount_value')
    if discount_type == DiscountType.PERCENTAGE.value and value is not None and value > 100:
        errors['discount_value'] = ['Prozentwert muss zwischen 0 und 100 liegen']

    valid_from = fields['valid_from'] if 'valid_from' in fields else getattr(current, 'valid_from', None)
    valid_until = fields['valid_until'] if 'valid_until' in fields else getattr(current, 'valid_until', None)
    if valid_from and valid_until and valid_until < valid_from:
        errors['valid_until'] = ['Muss nach dem Startdatum liegen']

    if errors:
        raise ValidationError(errors=errors)
    return fields


def create_discount_code(session: Session, data: Dict[str, Any]) -> DiscountCode:
    """Create a discount code; a missing code gets a random one."""
    data = dict(data)
    if not normalize_code(data.get('code')):
        data['code'] = generate_code()
    if data.get('discount_value') is None:
        raise ValidationError(errors={'discount_value': ['Pflichtfeld']})
    data.setdefault('discount_type', DiscountType.PERCENTAGE.value)
    fields = _coerce_code_fields(data)
    if not fields.get('valid_from'):
        fields['valid_from'] = utcnow()

    try:
        discount_code = DiscountCode(current_uses=0, **fields)
        session.add(discount_code)
        session.commit()
        logger.info(f"[DISCOUNT] code {discount_code.code} created (id={discount_code.id})")
        return discount_code
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'Der Rabattcode "{fields["code"]}" existiert bereits.', status_code=409)
    except Exception:
        session.rollback()
        raise


def update_discount_code(session: Session, discount_code_id: int, data: Dict[str, Any]) -> DiscountCode:
    """Update editable fields. current_uses is never written here."""
    discount_code = session.query(DiscountCode).filter(DiscountCode.id == discount_code_id).first()
    if not discount_code:
        raise NotFoundError('Rabattcode nicht gefunden.')

    data = {k: v for k, v in data.items() if k != 'current_uses'}
    data.setdefault('discount_type', discount_code.discount_type)
    if 'discount_value' not in data:
        data['discount_value'] = discount_code.discount_value
    fields = _coerce_code_fields(data, current=discount_code)

    if fields.get('max_uses') is not None and fields['max_uses'] < discount_code.current_uses:
        raise ValidationError(errors={'max_uses': [f'Bereits {discount_code.current_uses}x eingelöst']})

    try:
        for key, value in fields.items():
            setattr(discount_code, key, value)
        session.commit()
        logger.info(f"[DISCOUNT] code {discount_code.code} updated")
        return discount_code
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'Der Rabattcode "{fields.get("code")}" existiert bereits.', status_code=409)
    except Exception:
        session.rollback()
        raise


def deactivate_discount_code(session: Session, discount_code_id: int) -> DiscountCode:
    """Codes are deactivated rather than deleted so the usage ledger stays intact."""
    return update_discount_code(session, discount_code_id, {'is_active': False})
