"""
Admin Blueprint - back office for quote requests and discount codes (JSON).

Routes:
- /admin/orders - Order list (optional ?status=)
- /admin/orders/<id> - Order detail
- /admin/orders/<id>/status - Change status (history + customer mail)
- /admin/orders/<id>/history - Status history
- /admin/orders/<id>/notes - Internal notes (list / add; edit and delete by their author)
- /admin/discount-codes - List / create discount codes
- /admin/discount-codes/<id> - Update discount code
- /admin/discount-codes/<id>/deactivate - Deactivate discount code
"""

from flask import Blueprint, request, jsonify, current_app, g
from typing import Any, Dict
from app.database import get_session
from app.exceptions import ValidationError
from app.forms.discount_forms import DiscountCodeForm
from app.middleware import require_admin
from app.models import DiscountCode
from app.services import discount_service, order_note_service, order_service, order_status_service
from app.utils.formatters import money_str
from app.utils.request_data import json_payload, form_from_json, present_fields


admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _serialize_discount_code(discount_code: DiscountCode) -> Dict[str, Any]:
    return {
        'id': discount_code.id,
        'code': discount_code.code,
        'description': discount_code.description,
        'discount_type': discount_code.discount_type,
        'discount_value': money_str(discount_code.discount_value),
        'min_order_value': money_str(discount_code.min_order_value or 0),
        'max_uses': discount_code.max_uses,
        'current_uses': discount_code.current_uses,
        'valid_from': discount_code.valid_from.isoformat() if discount_code.valid_from else None,
        'valid_until': discount_code.valid_until.isoformat() if discount_code.valid_until else None,
        'is_active': discount_code.is_active,
        'is_eligible': discount_code.is_eligible(discount_service.utcnow()),
    }


def _discount_code_fields() -> Dict[str, Any]:
    payload = json_payload()
    form = form_from_json(DiscountCodeForm, payload)
    if not form.validate():
        raise ValidationError(errors=form.errors)
    return present_fields(form, payload)


# =====================================================
# ORDERS
# =====================================================

@admin_bp.route('/orders')
@require_admin
def list_orders():
    """All quote requests, newest first."""
    status = request.args.get('status', '').strip() or None
    orders = order_status_service.list_orders(get_session(), status=status)
    return jsonify({
        'status': 'success',
        'orders': [order_service.serialize_order(o, with_items=False) for o in orders],
    })


@admin_bp.route('/orders/<int:order_id>')
@require_admin
def order_detail(order_id: int):
    order = order_service.get_order_for_user(get_session(), order_id, g.user)
    data = order_service.serialize_order(order)
    data['allowed_transitions'] = order_status_service.allowed_transitions(order.status)
    return jsonify({'status': 'success', 'order': data})


@admin_bp.route('/orders/<int:order_id>/status', methods=['POST'])
@require_admin
def change_status(order_id: int):
    """Change the status of an order; the customer is notified by mail."""
    payload = json_payload()
    new_status = (payload.get('status') or '').strip()
    if not new_status:
        raise ValidationError(errors={'status': ['Pflichtfeld']})

    order = order_status_service.change_order_status(
        get_session(), order_id, new_status, g.user, notes=payload.get('notes')
    )
    current_app.logger.info(f"[ADMIN] order {order.order_number} set to {order.status} by {g.user.email}")
    return jsonify({'status': 'success', 'order': order_service.serialize_order(order, with_items=False)})


@admin_bp.route('/orders/<int:order_id>/history')
@require_admin
def order_history(order_id: int):
    entries = order_status_service.get_order_history(get_session(), order_id)
    return jsonify({
        'status': 'success',
        'history': [order_status_service.serialize_history(e) for e in entries],
    })


@admin_bp.route('/orders/<int:order_id>/notes')
@require_admin
def list_notes(order_id: int):
    notes = order_note_service.list_order_notes(get_session(), order_id, g.user)
    return jsonify({'status': 'success', 'notes': [order_note_service.serialize_note(n) for n in notes]})


@admin_bp.route('/orders/<int:order_id>/notes', methods=['POST'])
@require_admin
def add_note(order_id: int):
    note = order_note_service.add_order_note(get_session(), order_id, g.user, json_payload().get('content'))
    return jsonify({'status': 'success', 'note': order_note_service.serialize_note(note)}), 201


@admin_bp.route('/orders/<int:order_id>/notes/<int:note_id>', methods=['PATCH', 'PUT'])
@require_admin
def update_note(order_id: int, note_id: int):
    note = order_note_service.update_order_note(
        get_session(), order_id, note_id, g.user, json_payload().get('content')
    )
    return jsonify({'status': 'success', 'note': order_note_service.serialize_note(note)})


@admin_bp.route('/orders/<int:order_id>/notes/<int:note_id>', methods=['DELETE'])
@require_admin
def delete_note(order_id: int, note_id: int):
    order_note_service.delete_order_note(get_session(), order_id, note_id, g.user)
    return jsonify({'status': 'success'})


# =====================================================
# DISCOUNT CODES
# =====================================================

@admin_bp.route('/discount-codes')
@require_admin
def list_discount_codes():
    codes = get_session().query(DiscountCode).order_by(DiscountCode.created_at.desc(), DiscountCode.id.desc()).all()
    return jsonify({'status': 'success', 'discount_codes': [_serialize_discount_code(c) for c in codes]})


@admin_bp.route('/discount-codes', methods=['POST'])
@require_admin
def create_discount_code():
    discount_code = discount_service.create_discount_code(get_session(), _discount_code_fields())
    return jsonify({'status': 'success', 'discount_code': _serialize_discount_code(discount_code)}), 201


@admin_bp.route('/discount-codes/<int:discount_code_id>', methods=['PATCH', 'PUT'])
@require_admin
def update_discount_code(discount_code_id: int):
    discount_code = discount_service.update_discount_code(get_session(), discount_code_id, _discount_code_fields())
    return jsonify({'status': 'success', 'discount_code': _serialize_discount_code(discount_code)})


@admin_bp.route('/discount-codes/<int:discount_code_id>/deactivate', methods=['POST'])
@require_admin
def deactivate_discount_code(discount_code_id: int):
    discount_code = discount_service.deactivate_discount_code(get_session(), discount_code_id)
    return jsonify({'status': 'success', 'discount_code': _serialize_discount_code(discount_code)})
