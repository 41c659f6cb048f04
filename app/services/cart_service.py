"""
Cart Service - the customer's in-progress quote request.

The cart is a plain in-memory aggregate. It never touches the database;
after every mutation it hands its state to an injected CartStore (the
Flask session in production).
"""
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import session as flask_session

from app.services.catalog_service import CatalogSnapshot, ProductSnapshot, VehicleSnapshot

logger = logging.getLogger(__name__)


@dataclass
class CartLineItem:
    """Product line. Only quantity is mutable."""
    catalog_item_id: int
    name: str
    unit_net_price: Decimal
    tax_rate: Decimal
    discount_percentage: Decimal
    quantity: int

    @classmethod
    def from_snapshot(cls, product: ProductSnapshot, quantity: int) -> 'CartLineItem':
        return cls(
            catalog_item_id=product.id,
            name=product.name,
            unit_net_price=product.price,
            tax_rate=product.tax_rate,
            discount_percentage=product.discount_percentage,
            quantity=quantity,
        )


@dataclass(frozen=True)
class CartVehicleItem:
    """Vehicle line. Quantity is always 1."""
    vehicle_id: int
    brand: str
    model: str
    unit_net_price: Decimal
    discount_percentage: Decimal
    vat_margin_scheme: bool

    quantity = 1

    @property
    def name(self) -> str:
        return f"{self.brand} {self.model}"

    @classmethod
    def from_snapshot(cls, vehicle: VehicleSnapshot) -> 'CartVehicleItem':
        return cls(
            vehicle_id=vehicle.id,
            brand=vehicle.brand,
            model=vehicle.model,
            unit_net_price=vehicle.price,
            discount_percentage=vehicle.discount_percentage,
            vat_margin_scheme=vehicle.vat_margin_scheme,
        )


@dataclass(frozen=True)
class AppliedDiscount:
    """Snapshot of an eligible discount code, taken when it was applied."""
    id: int
    code: str
    type: str
    value: Decimal
    min_order_value: Decimal = Decimal('0')

    @classmethod
    def from_model(cls, discount_code) -> 'AppliedDiscount':
        return cls(
            id=discount_code.id,
            code=discount_code.code,
            type=discount_code.discount_type,
            value=Decimal(str(discount_code.discount_value)),
            min_order_value=Decimal(str(discount_code.min_order_value or 0)),
        )


class CartStore:
    """Persistence port for carts: a scoped key-value store."""

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, key: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError


class SessionCartStore(CartStore):
    """Stores carts in the signed Flask session, one entry per user."""

    def __init__(self, session_key: str = 'cart_by_user'):
        self.session_key = session_key

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        return flask_session.get(self.session_key, {}).get(key)

    def save(self, key: str, data: Dict[str, Any]) -> None:
        carts = dict(flask_session.get(self.session_key, {}))
        carts[key] = data
        flask_session[self.session_key] = carts
        flask_session.modified = True


def _serialize_value(val):
    """Helper to ensure values are JSON serializable for the session."""
    if isinstance(val, Decimal):
        return str(val)
    if isinstance(val, dict):
        return {k: _serialize_value(v) for k, v in val.items()}
    return val


def _clamp_to_stock(quantity: int, stock: Optional[int]) -> int:
    """Stock <= 0 (or unknown) means available on request: no upper bound."""
    if stock is not None and stock > 0:
        quantity = min(quantity, stock)
    return max(quantity, 1)


def _is_valid_quantity(quantity) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity >= 1


class Cart:
    """
    Cart aggregate: product lines, vehicle lines and the applied discount.

    All operations are synchronous and never raise for the documented
    inputs; rejected mutations return False and leave the cart unchanged.
    """

    def __init__(self, store: Optional[CartStore] = None, key: Optional[str] = None):
        self.store = store
        self.key = key
        self.lines: Dict[int, CartLineItem] = {}
        self.vehicles: Dict[int, CartVehicleItem] = {}
        self.applied_discount: Optional[AppliedDiscount] = None

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, store: CartStore, key: str) -> 'Cart':
        cart = cls(store=store, key=key)
        data = store.load(key)
        if data:
            cart._restore(data)
        return cart

    def _restore(self, data: Dict[str, Any]) -> None:
        for raw in data.get('lines', []):
            line = CartLineItem(
                catalog_item_id=int(raw['catalog_item_id']),
                name=raw['name'],
                unit_net_price=Decimal(raw['unit_net_price']),
                tax_rate=Decimal(raw['tax_rate']),
                discount_percentage=Decimal(raw['discount_percentage']),
                quantity=int(raw['quantity']),
            )
            self.lines[line.catalog_item_id] = line
        for raw in data.get('vehicles', []):
            vehicle = CartVehicleItem(
                vehicle_id=int(raw['vehicle_id']),
                brand=raw['brand'],
                model=raw['model'],
                unit_net_price=Decimal(raw['unit_net_price']),
                discount_percentage=Decimal(raw['discount_percentage']),
                vat_margin_scheme=bool(raw['vat_margin_scheme']),
            )
            self.vehicles[vehicle.vehicle_id] = vehicle
        raw_discount = data.get('applied_discount')
        if raw_discount:
            self.applied_discount = AppliedDiscount(
                id=int(raw_discount['id']),
                code=raw_discount['code'],
                type=raw_discount['type'],
                value=Decimal(raw_discount['value']),
                min_order_value=Decimal(raw_discount['min_order_value']),
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [_serialize_value(asdict(line)) for line in self.lines.values()],
            'vehicles': [_serialize_value(asdict(v)) for v in self.vehicles.values()],
            'applied_discount': (
                _serialize_value(asdict(self.applied_discount)) if self.applied_discount else None
            ),
        }

    def _persist(self) -> None:
        if self.store is not None and self.key is not None:
            self.store.save(self.key, self.to_dict())

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def add_product(self, product: ProductSnapshot, quantity: int = 1) -> bool:
        """Insert a product line or increase its quantity, clamped to known stock."""
        if not _is_valid_quantity(quantity):
            return False

        line = self.lines.get(product.id)
        current = line.quantity if line else 0
        new_quantity = _clamp_to_stock(current + quantity, product.stock)

        if line:
            line.quantity = new_quantity
        else:
            self.lines[product.id] = CartLineItem.from_snapshot(product, new_quantity)

        self._persist()
        return True

    def set_quantity(self, product_id: int, quantity: int, stock: Optional[int] = None) -> bool:
        """Set a line's quantity. quantity < 1 is rejected: use remove_product."""
        line = self.lines.get(product_id)
        if line is None or not _is_valid_quantity(quantity):
            return False

        line.quantity = _clamp_to_stock(quantity, stock)
        self._persist()
        return True

    def remove_product(self, product_id: int) -> None:
        if self.lines.pop(product_id, None) is not None:
            self._persist()

    # ------------------------------------------------------------------
    # Vehicles
    # ------------------------------------------------------------------

    def add_vehicle(self, vehicle: VehicleSnapshot) -> bool:
        """Add a vehicle once. Sold, reserved or already present vehicles are refused."""
        if vehicle.id in self.vehicles:
            return False
        if vehicle.is_sold or vehicle.is_reserved or vehicle.is_deleted:
            return False

        self.vehicles[vehicle.id] = CartVehicleItem.from_snapshot(vehicle)
        self._persist()
        return True

    def remove_vehicle(self, vehicle_id: int) -> None:
        if self.vehicles.pop(vehicle_id, None) is not None:
            self._persist()

    # ------------------------------------------------------------------
    # Discount code (validated server side before it gets here)
    # ------------------------------------------------------------------

    def apply_discount(self, discount: AppliedDiscount) -> None:
        self.applied_discount = discount
        self._persist()

    def remove_discount(self) -> None:
        """Discard the applied code. No usage counter is touched."""
        if self.applied_discount is not None:
            self.applied_discount = None
            self._persist()

    # ------------------------------------------------------------------
    # Whole cart
    # ------------------------------------------------------------------

    def reconcile(self, catalog: CatalogSnapshot) -> List[str]:
        """
        Drop lines whose catalog item disappeared or is no longer sellable.

        Products: missing or inactive. Vehicles: missing, deleted, sold or reserved.
        Surviving lines keep their snapshot prices. Returns the removed names.
        """
        removed = []

        for product_id, line in list(self.lines.items()):
            product = catalog.products.get(product_id)
            if product is None or not product.is_active:
                removed.append(line.name)
                del self.lines[product_id]

        for vehicle_id, vehicle in list(self.vehicles.items()):
            current = catalog.vehicles.get(vehicle_id)
            if current is None or current.is_deleted or current.is_sold or current.is_reserved:
                removed.append(vehicle.name)
                del self.vehicles[vehicle_id]

        if removed:
            logger.info(f"[CART] reconcile removed {len(removed)} line(s) from cart {self.key}")
            self._persist()
        return removed

    def clear(self) -> None:
        self.lines.clear()
        self.vehicles.clear()
        self.applied_discount = None
        self._persist()

    @property
    def is_empty(self) -> bool:
        return not self.lines and not self.vehicles

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines.values()) + len(self.vehicles)
