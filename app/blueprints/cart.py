"""Portal cart blueprint - the customer's quote request cart (JSON)."""
from decimal import Decimal
from flask import Blueprint, jsonify, current_app, g

from app.database import get_session
from app.exceptions import BusinessLogicError, NotFoundError, ValidationError
from app.middleware import require_login
from app.services import catalog_service, discount_service
from app.services.cart_service import Cart, SessionCartStore
from app.services.pricing_service import calculate_cart_totals, calculate_totals
from app.utils.formatters import money_str
from app.utils.request_data import json_payload, int_field

cart_bp = Blueprint('cart', __name__, url_prefix='/portal/cart')


def vat_rate() -> Decimal:
    return Decimal(str(current_app.config.get('VAT_RATE', 19)))


def load_cart() -> Cart:
    """The current user's cart, persisted in the signed session."""
    store = SessionCartStore(current_app.config.get('CART_SESSION_KEY', 'cart_by_user'))
    return Cart.load(store, str(g.user.id))


def cart_owner_id(cart: Cart) -> int:
    return int(cart.key)


def serialize_cart(cart: Cart) -> dict:
    discount = cart.applied_discount
    return {
        'lines': [
            {
                'product_id': line.catalog_item_id,
                'name': line.name,
                'quantity': line.quantity,
                'unit_net_price': money_str(line.unit_net_price),
                'tax_rate': str(line.tax_rate),
                'discount_percentage': str(line.discount_percentage),
            }
            for line in cart.lines.values()
        ],
        'vehicles': [
            {
                'vehicle_id': v.vehicle_id,
                'name': v.name,
                'unit_net_price': money_str(v.unit_net_price),
                'discount_percentage': str(v.discount_percentage),
                'vat_margin_scheme': v.vat_margin_scheme,
            }
            for v in cart.vehicles.values()
        ],
        'applied_discount': {
            'code': discount.code,
            'type': discount.type,
            'value': str(discount.value),
        } if discount else None,
        'total_items': cart.total_items,
    }


def cart_response(cart: Cart, status_code: int = 200, **extra):
    body = {
        'status': 'success',
        'cart': serialize_cart(cart),
        'totals': calculate_cart_totals(cart, vat_rate()).to_dict(),
    }
    body.update(extra)
    return jsonify(body), status_code


@cart_bp.route('', methods=['GET'])
@require_login
def view_cart():
    """Cart contents with the current totals breakdown."""
    return cart_response(load_cart())


@cart_bp.route('/items', methods=['POST'])
@require_login
def add_item():
    payload = json_payload()
    product_id = int_field(payload, 'product_id')
    quantity = int_field(payload, 'quantity', default=1)

    product = catalog_service.get_product(get_session(), product_id)
    if not product.is_active:
        raise BusinessLogicError('Dieses Produkt ist nicht mehr verfügbar.')

    cart = load_cart()
    if not cart.add_product(product, quantity):
        raise ValidationError(errors={'quantity': ['Muss mindestens 1 sein']})

    current_app.logger.info(f"[CART] user={g.user.id} add product={product_id} qty={quantity}")
    return cart_response(cart)


@cart_bp.route('/items/<int:product_id>', methods=['PATCH', 'PUT'])
@require_login
def update_item(product_id: int):
    payload = json_payload()
    quantity = int_field(payload, 'quantity')

    cart = load_cart()
    if product_id not in cart.lines:
        raise NotFoundError('Artikel ist nicht im Warenkorb.')

    # Stock is re-read so the clamp uses current availability
    try:
        stock = catalog_service.get_product(get_session(), product_id).stock
    except NotFoundError:
        stock = None

    if not cart.set_quantity(product_id, quantity, stock=stock):
        raise ValidationError(errors={'quantity': ['Muss mindestens 1 sein']})
    return cart_response(cart)


@cart_bp.route('/items/<int:product_id>', methods=['DELETE'])
@require_login
def remove_item(product_id: int):
    cart = load_cart()
    cart.remove_product(product_id)
    return cart_response(cart)


@cart_bp.route('/vehicles', methods=['POST'])
@require_login
def add_vehicle():
    payload = json_payload()
    vehicle_id = int_field(payload, 'vehicle_id')

    vehicle = catalog_service.get_vehicle(get_session(), vehicle_id)
    cart = load_cart()
    if not cart.add_vehicle(vehicle):
        raise BusinessLogicError(
            'Das Fahrzeug ist bereits im Warenkorb oder nicht mehr verfügbar.',
            status_code=409
        )

    current_app.logger.info(f"[CART] user={g.user.id} add vehicle={vehicle_id}")
    return cart_response(cart)


@cart_bp.route('/vehicles/<int:vehicle_id>', methods=['DELETE'])
@require_login
def remove_vehicle(vehicle_id: int):
    cart = load_cart()
    cart.remove_vehicle(vehicle_id)
    return cart_response(cart)


@cart_bp.route('/discount', methods=['POST'])
@require_login
def apply_discount():
    """Validate a discount code against the cart's net total and apply it."""
    payload = json_payload()
    cart = load_cart()

    pre_code_total = calculate_totals(cart.lines.values(), cart.vehicles.values(), None, vat_rate()).net_total
    applied = discount_service.validate_discount_code(
        get_session(),
        payload.get('code') or '',
        pre_code_total,
        requesting_user_id=g.user.id,
        cart_owner_id=cart_owner_id(cart),
    )
    cart.apply_discount(applied)
    return cart_response(cart, message=f'Rabattcode {applied.code} wurde angewendet.')


@cart_bp.route('/discount', methods=['DELETE'])
@require_login
def remove_discount():
    cart = load_cart()
    cart.remove_discount()
    return cart_response(cart)


@cart_bp.route('/reconcile', methods=['POST'])
@require_login
def reconcile():
    """Checkout preview: drop lines that are no longer available."""
    cart = load_cart()
    catalog = catalog_service.load_catalog_snapshot(get_session(), cart.lines.keys(), cart.vehicles.keys())
    removed = cart.reconcile(catalog)
    return cart_response(cart, removed=removed)
