"""
Pricing & tax calculator for quote request carts.

Pure functions over cart lines; no database, no rounding. Amounts are
rounded to cents only when they are presented or persisted
(see app.utils.formatters.round_money).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Any

from app.exceptions import PricingError
from app.models.discount_code import DiscountType
from app.services.cart_service import AppliedDiscount, Cart, CartLineItem, CartVehicleItem
from app.utils.formatters import money_str

VAT_RATE = Decimal('19')
HUNDRED = Decimal('100')
ZERO = Decimal('0')


@dataclass(frozen=True)
class LineTotals:
    """Per-line breakdown (product or vehicle)."""
    kind: str
    item_id: int
    name: str
    quantity: int
    unit_net_price: Decimal
    discount_percentage: Decimal
    discounted_unit_price: Decimal
    line_net: Decimal
    line_tax: Decimal
    line_discount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'id': self.item_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit_net_price': money_str(self.unit_net_price),
            'discount_percentage': str(self.discount_percentage),
            'discounted_unit_price': money_str(self.discounted_unit_price),
            'line_net': money_str(self.line_net),
            'line_tax': money_str(self.line_tax),
        }


@dataclass(frozen=True)
class CartTotals:
    """
    Totals breakdown.

    net_total: after per-item discounts and the discount code.
    discount_total: per-item discounts only; code_discount is separate.
    line_tax_total: sum of the individually computed line taxes (informational).
    """
    pre_code_net_total: Decimal
    code_discount: Decimal
    net_total: Decimal
    tax_total: Decimal
    gross_total: Decimal
    discount_total: Decimal
    line_tax_total: Decimal
    lines: List[LineTotals] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pre_code_net_total': money_str(self.pre_code_net_total),
            'code_discount': money_str(self.code_discount),
            'net_total': money_str(self.net_total),
            'tax_total': money_str(self.tax_total),
            'gross_total': money_str(self.gross_total),
            'discount_total': money_str(self.discount_total),
            'lines': [line.to_dict() for line in self.lines],
        }


def discounted_price(price: Decimal, discount_percentage: Decimal) -> Decimal:
    """Price after a percentage discount (0-100)."""
    if not discount_percentage:
        return price
    return price * (1 - discount_percentage / HUNDRED)


def _check_amount(value, label: str) -> Decimal:
    if not isinstance(value, Decimal):
        raise PricingError(f"{label} muss ein Dezimalwert sein")
    if not value.is_finite() or value < ZERO:
        raise PricingError(f"{label} darf nicht negativ sein")
    return value


def _check_percentage(value, label: str) -> Decimal:
    value = _check_amount(value, label)
    if value > HUNDRED:
        raise PricingError(f"{label} muss zwischen 0 und 100 liegen")
    return value


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise PricingError(f"Menge {quantity!r} ist ungültig")
    return quantity


def _product_totals(line: CartLineItem) -> LineTotals:
    quantity = _check_quantity(line.quantity)
    unit_price = _check_amount(line.unit_net_price, 'Preis')
    pct = _check_percentage(line.discount_percentage, 'Rabatt')
    tax_rate = _check_amount(line.tax_rate, 'Steuersatz')

    unit_discounted = discounted_price(unit_price, pct)
    line_net = unit_discounted * quantity
    return LineTotals(
        kind='product',
        item_id=line.catalog_item_id,
        name=line.name,
        quantity=quantity,
        unit_net_price=unit_price,
        discount_percentage=pct,
        discounted_unit_price=unit_discounted,
        line_net=line_net,
        line_tax=line_net * tax_rate / HUNDRED,
        line_discount=(unit_price - unit_discounted) * quantity,
    )


def _vehicle_totals(vehicle: CartVehicleItem, vat_rate: Decimal) -> LineTotals:
    price = _check_amount(vehicle.unit_net_price, 'Fahrzeugpreis')
    pct = _check_percentage(vehicle.discount_percentage, 'Rabatt')

    price_discounted = discounted_price(price, pct)
    line_tax = ZERO if vehicle.vat_margin_scheme else price_discounted * vat_rate / HUNDRED
    return LineTotals(
        kind='vehicle',
        item_id=vehicle.vehicle_id,
        name=vehicle.name,
        quantity=1,
        unit_net_price=price,
        discount_percentage=pct,
        discounted_unit_price=price_discounted,
        line_net=price_discounted,
        line_tax=line_tax,
        line_discount=price - price_discounted,
    )


def code_discount_amount(discount: Optional[AppliedDiscount], pre_code_net_total: Decimal) -> Decimal:
    """Discount granted by a code. Fixed amounts never push the net total below zero."""
    if discount is None:
        return ZERO

    if discount.type == DiscountType.PERCENTAGE.value:
        pct = _check_percentage(discount.value, 'Rabattcode')
        return pre_code_net_total * pct / HUNDRED
    if discount.type == DiscountType.FIXED.value:
        value = _check_amount(discount.value, 'Rabattcode')
        return min(value, pre_code_net_total)
    raise PricingError(f"unbekannter Rabatttyp {discount.type!r}")


def calculate_totals(
    lines: Iterable[CartLineItem],
    vehicles: Iterable[CartVehicleItem],
    applied_discount: Optional[AppliedDiscount] = None,
    vat_rate: Decimal = VAT_RATE
) -> CartTotals:
    """
    Reduce cart lines (and an optional discount code) to a totals breakdown.

    Tax: an order made up only of margin-scheme vehicles carries no VAT.
    Any other composition is taxed at vat_rate on the final net total,
    even when it contains margin-scheme vehicles; line_tax_total keeps the
    per-line figures for display.
    """
    product_totals = [_product_totals(line) for line in lines]
    vehicle_lines = list(vehicles)
    vehicle_totals = [_vehicle_totals(v, vat_rate) for v in vehicle_lines]
    all_totals = product_totals + vehicle_totals

    pre_code_net_total = sum((t.line_net for t in all_totals), ZERO)
    discount_total = sum((t.line_discount for t in all_totals), ZERO)
    line_tax_total = sum((t.line_tax for t in all_totals), ZERO)

    code_discount = code_discount_amount(applied_discount, pre_code_net_total)
    net_total = pre_code_net_total - code_discount

    margin_scheme_only = not product_totals and all(v.vat_margin_scheme for v in vehicle_lines)
    if margin_scheme_only:
        tax_total = ZERO
    else:
        tax_total = net_total * vat_rate / HUNDRED

    return CartTotals(
        pre_code_net_total=pre_code_net_total,
        code_discount=code_discount,
        net_total=net_total,
        tax_total=tax_total,
        gross_total=net_total + tax_total,
        discount_total=discount_total,
        line_tax_total=line_tax_total,
        lines=all_totals,
    )


def calculate_cart_totals(cart: Cart, vat_rate: Decimal = VAT_RATE) -> CartTotals:
    """Totals for a Cart aggregate, including its applied discount."""
    return calculate_totals(
        cart.lines.values(),
        cart.vehicles.values(),
        cart.applied_discount,
        vat_rate=vat_rate,
    )
