"""
Catalog reference - read-only snapshots of products and vehicles.

The catalog itself is maintained by the back office; the cart and the
order submission only read from it through the functions below.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.models import Product, Vehicle
from app.exceptions import NotFoundError


@dataclass(frozen=True)
class ProductSnapshot:
    """Product fields the cart needs, captured at read time."""
    id: int
    name: str
    price: Decimal
    tax_rate: Decimal
    discount_percentage: Decimal
    stock: int
    is_active: bool

    @classmethod
    def from_model(cls, product: Product) -> 'ProductSnapshot':
        return cls(
            id=product.id,
            name=product.name,
            price=Decimal(str(product.price)),
            tax_rate=Decimal(str(product.tax_rate if product.tax_rate is not None else 0)),
            discount_percentage=Decimal(str(product.discount_percentage or 0)),
            stock=int(product.stock_quantity or 0),
            is_active=bool(product.is_active),
        )


@dataclass(frozen=True)
class VehicleSnapshot:
    """Vehicle fields the cart needs, captured at read time."""
    id: int
    brand: str
    model: str
    price: Decimal
    discount_percentage: Decimal
    vat_margin_scheme: bool
    is_sold: bool
    is_reserved: bool
    is_deleted: bool = False

    @classmethod
    def from_model(cls, vehicle: Vehicle) -> 'VehicleSnapshot':
        return cls(
            id=vehicle.id,
            brand=vehicle.brand,
            model=vehicle.model,
            price=Decimal(str(vehicle.price)),
            discount_percentage=Decimal(str(vehicle.discount_percentage or 0)),
            vat_margin_scheme=bool(vehicle.vat_margin_scheme),
            is_sold=bool(vehicle.is_sold),
            is_reserved=bool(vehicle.is_reserved),
            is_deleted=vehicle.deleted_at is not None,
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    """Current catalog state for the items referenced by a cart."""
    products: Dict[int, ProductSnapshot] = field(default_factory=dict)
    vehicles: Dict[int, VehicleSnapshot] = field(default_factory=dict)


def get_product(session: Session, product_id: int) -> ProductSnapshot:
    """Return a product snapshot or raise NotFoundError."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Produkt nicht gefunden.')
    return ProductSnapshot.from_model(product)


def get_vehicle(session: Session, vehicle_id: int) -> VehicleSnapshot:
    """Return a vehicle snapshot or raise NotFoundError (soft-deleted vehicles count as missing)."""
    vehicle = session.query(Vehicle).filter(
        Vehicle.id == vehicle_id,
        Vehicle.deleted_at.is_(None)
    ).first()
    if not vehicle:
        raise NotFoundError('Fahrzeug nicht gefunden.')
    return VehicleSnapshot.from_model(vehicle)


def load_catalog_snapshot(
    session: Session,
    product_ids: Iterable[int],
    vehicle_ids: Optional[Iterable[int]] = None
) -> CatalogSnapshot:
    """Batch-load the catalog entries a cart refers to. Missing ids are simply absent."""
    product_ids = list(product_ids)
    vehicle_ids = list(vehicle_ids or [])

    products = {}
    if product_ids:
        rows = session.query(Product).filter(Product.id.in_(product_ids)).all()
        products = {p.id: ProductSnapshot.from_model(p) for p in rows}

    vehicles = {}
    if vehicle_ids:
        rows = session.query(Vehicle).filter(Vehicle.id.in_(vehicle_ids)).all()
        vehicles = {v.id: VehicleSnapshot.from_model(v) for v in rows}

    return CatalogSnapshot(products=products, vehicles=vehicles)
