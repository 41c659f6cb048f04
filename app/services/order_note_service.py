"""Internal order notes for the back office."""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.models import AppUser, Order, OrderNote
from app.exceptions import NotFoundError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 5000


def _require_admin(user: AppUser) -> AppUser:
    if user is None or not user.is_admin:
        raise UnauthorizedError()
    return user


def _clean_content(content) -> str:
    content = (content or '').strip()
    if not content:
        raise ValidationError(errors={'content': ['Pflichtfeld']})
    if len(content) > MAX_NOTE_LENGTH:
        raise ValidationError(errors={'content': [f'Höchstens {MAX_NOTE_LENGTH} Zeichen']})
    return content


def _get_own_note(session: Session, order_id: int, note_id: int, user: AppUser) -> OrderNote:
    note = session.query(OrderNote).filter(OrderNote.id == note_id, OrderNote.order_id == order_id).first()
    if not note:
        raise NotFoundError('Notiz nicht gefunden.')
    if note.author_id != user.id:
        raise UnauthorizedError('Nur der Verfasser kann diese Notiz ändern.')
    return note


def list_order_notes(session: Session, order_id: int, user: AppUser) -> List[OrderNote]:
    """Notes of an order, oldest first."""
    _require_admin(user)
    if not session.query(Order.id).filter(Order.id == order_id).first():
        raise NotFoundError(f'Anfrage {order_id} nicht gefunden.')
    return (
        session.query(OrderNote)
        .filter(OrderNote.order_id == order_id)
        .order_by(OrderNote.created_at, OrderNote.id)
        .all()
    )


def add_order_note(session: Session, order_id: int, user: AppUser, content: str) -> OrderNote:
    _require_admin(user)
    content = _clean_content(content)
    if not session.query(Order.id).filter(Order.id == order_id).first():
        raise NotFoundError(f'Anfrage {order_id} nicht gefunden.')

    try:
        note = OrderNote(
            order_id=order_id,
            author_id=user.id,
            author_name=user.full_name or user.company_name or user.email,
            content=content,
        )
        session.add(note)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] note {note.id} added to order {order_id} by admin {user.id}")
    return note


def update_order_note(session: Session, order_id: int, note_id: int, user: AppUser, content: str) -> OrderNote:
    _require_admin(user)
    content = _clean_content(content)
    note = _get_own_note(session, order_id, note_id, user)

    try:
        note.content = content
        session.commit()
    except Exception:
        session.rollback()
        raise
    return note


def delete_order_note(session: Session, order_id: int, note_id: int, user: AppUser) -> None:
    _require_admin(user)
    note = _get_own_note(session, order_id, note_id, user)

    try:
        session.delete(note)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] note {note_id} deleted from order {order_id} by admin {user.id}")


def serialize_note(note: OrderNote) -> dict:
    return {
        'id': note.id,
        'order_id': note.order_id,
        'author_id': note.author_id,
        'author_name': note.author_name,
        'content': note.content,
        'created_at': note.created_at.isoformat() if note.created_at else None,
        'updated_at': note.updated_at.isoformat() if note.updated_at else None,
    }
