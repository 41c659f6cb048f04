"""Order status changes (back office) with history and customer notification."""
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.models import AppUser, Order, OrderStatus, OrderStatusHistory, STATUS_TRANSITIONS
from app.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, ValidationError
from app.services import email_service

logger = logging.getLogger(__name__)


def _parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(errors={'status': [f'Unbekannter Status: {value}']})


def allowed_transitions(status: str) -> List[str]:
    return sorted(s.value for s in STATUS_TRANSITIONS.get(OrderStatus(status), set()))


def change_order_status(
    session: Session,
    order_id: int,
    new_status: str,
    admin: AppUser,
    notes: Optional[str] = None,
    notify: Optional[Callable[..., bool]] = None
) -> Order:
    """
    Move an order to `new_status` and append a history entry.

    Only the status changes; items and amounts are never touched.
    The customer mail is sent after commit and never fails the change.
    """
    if admin is None or not admin.is_admin:
        raise UnauthorizedError()

    target = _parse_status(new_status)
    order = session.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError(f'Anfrage {order_id} nicht gefunden.')

    current = OrderStatus(order.status)
    if target not in STATUS_TRANSITIONS[current]:
        raise BusinessLogicError(
            f'Statuswechsel von "{current.value}" nach "{target.value}" ist nicht erlaubt.',
            status_code=409
        )

    try:
        order.status = target.value
        session.add(OrderStatusHistory(
            order_id=order.id,
            old_status=current.value,
            new_status=target.value,
            changed_by=admin.id,
            changed_by_name=admin.full_name or admin.email,
            notes=notes or None,
        ))
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] {order.order_number}: {current.value} -> {target.value} by admin {admin.id}")

    notify = notify or email_service.send_order_status_email
    try:
        user = order.user
        if not notify(user.email if user else None, order.customer_name, order.order_number, target.value):
            logger.error(f"[ORDER] status mail for {order.order_number} reported failure")
    except Exception as e:
        logger.error(f"[ORDER] status mail for {order.order_number} failed: {e}", exc_info=True)

    return order


def list_orders(session: Session, status: Optional[str] = None, limit: int = 200) -> List[Order]:
    """Back-office order list, newest first."""
    query = session.query(Order)
    if status:
        query = query.filter(Order.status == _parse_status(status).value)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def get_order_history(session: Session, order_id: int) -> List[OrderStatusHistory]:
    if not session.query(Order.id).filter(Order.id == order_id).first():
        raise NotFoundError(f'Anfrage {order_id} nicht gefunden.')
    return (
        session.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.id)
        .all()
    )


def serialize_history(entry: OrderStatusHistory) -> dict:
    return {
        'old_status': entry.old_status,
        'new_status': entry.new_status,
        'changed_by': entry.changed_by,
        'changed_by_name': entry.changed_by_name,
        'notes': entry.notes,
        'created_at': entry.created_at.isoformat() if entry.created_at else None,
    }
