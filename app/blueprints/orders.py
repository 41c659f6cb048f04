"""Portal orders blueprint - quote request submission and history (JSON)."""
from datetime import datetime
from flask import Blueprint, jsonify, current_app, g, request, send_file

from app.database import get_session
from app.exceptions import BusinessLogicError, ValidationError
from app.forms.checkout_forms import CheckoutForm
from app.middleware import require_login, require_approved
from app.services import catalog_service, order_service
from app.services.order_pdf_service import generate_order_pdf
from app.blueprints.cart import load_cart, vat_rate
from app.utils.request_data import json_payload, form_from_json

orders_bp = Blueprint('orders', __name__, url_prefix='/portal/orders')


def business_info() -> dict:
    return {
        'name': current_app.config.get('BUSINESS_NAME', ''),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
    }


@orders_bp.route('', methods=['POST'])
@require_login
@require_approved
def submit():
    """
    Submit the cart as a quote request.

    Lines that are no longer available are dropped first; if anything was
    dropped the request is refused (409) so the customer can review the
    new totals before submitting again.
    """
    db_session = get_session()
    payload = json_payload()

    form = form_from_json(CheckoutForm, payload)
    if not form.validate():
        current_app.logger.info(f"[ORDER] checkout validation failed for user {g.user.id}: {list(form.errors)}")
        raise ValidationError(errors=form.errors)

    cart = load_cart()
    catalog = catalog_service.load_catalog_snapshot(db_session, cart.lines.keys(), cart.vehicles.keys())
    removed = cart.reconcile(catalog)
    if removed:
        raise BusinessLogicError(
            'Einige Artikel sind nicht mehr verfügbar und wurden aus dem Warenkorb entfernt.',
            status_code=409,
            payload={'removed': removed}
        )

    idempotency_key = payload.get('idempotency_key') or request.headers.get('Idempotency-Key')

    result = order_service.submit_order(
        db_session,
        g.user,
        cart,
        order_service.CheckoutDetails.from_mapping(form.data),
        idempotency_key=idempotency_key,
        vat_rate=vat_rate(),
        order_number_prefix=current_app.config.get('ORDER_NUMBER_PREFIX', 'ANF'),
    )

    return jsonify({
        'status': 'success',
        'message': f'Vielen Dank! Ihre Anfrage {result.order_number} wurde übermittelt.',
        'order': result.to_dict(),
    }), 201


@orders_bp.route('', methods=['GET'])
@require_login
def list_orders():
    """The customer's own quote requests, newest first."""
    orders = order_service.list_orders_for_user(get_session(), g.user)
    return jsonify({
        'status': 'success',
        'orders': [order_service.serialize_order(o, with_items=False) for o in orders],
    })


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def detail(order_id: int):
    order = order_service.get_order_for_user(get_session(), order_id, g.user)
    return jsonify({'status': 'success', 'order': order_service.serialize_order(order)})


@orders_bp.route('/<int:order_id>/pdf', methods=['GET'])
@require_login
def order_pdf(order_id: int):
    """Download the quote request as PDF."""
    order = order_service.get_order_for_user(get_session(), order_id, g.user)
    pdf_buffer = generate_order_pdf(order, business_info())

    filename = f"anfrage_{order.order_number}_{datetime.now().strftime('%Y%m%d')}.pdf"
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )
