"""
Unit tests for the pricing & tax calculator.
"""

import pytest
from decimal import Decimal

from app.exceptions import PricingError
from app.services.cart_service import AppliedDiscount, CartLineItem, CartVehicleItem
from app.services.pricing_service import calculate_totals, code_discount_amount
from app.utils.formatters import round_money


def line(price='100', qty=1, discount='0', tax_rate='19', id=1):
    return CartLineItem(
        catalog_item_id=id,
        name=f'Artikel {id}',
        unit_net_price=Decimal(price),
        tax_rate=Decimal(tax_rate),
        discount_percentage=Decimal(discount),
        quantity=qty,
    )


def vehicle(price='5000', margin=False, discount='0', id=1):
    return CartVehicleItem(
        vehicle_id=id,
        brand='VW',
        model='Golf',
        unit_net_price=Decimal(price),
        discount_percentage=Decimal(discount),
        vat_margin_scheme=margin,
    )


def percent(value):
    return AppliedDiscount(id=1, code='P', type='percentage', value=Decimal(value))


def fixed(value):
    return AppliedDiscount(id=2, code='F', type='fixed', value=Decimal(value))


class TestProductLines:
    """Per-line computations."""

    def test_line_net_and_tax(self):
        totals = calculate_totals([line('100.00', qty=2, discount='10')], [])

        assert totals.lines[0].line_net == Decimal('180.00')
        assert round_money(totals.lines[0].line_tax) == Decimal('34.20')
        assert totals.net_total == Decimal('180.00')
        assert round_money(totals.tax_total) == Decimal('34.20')
        assert round_money(totals.gross_total) == Decimal('214.20')
        assert totals.discount_total == Decimal('20.00')

    @pytest.mark.parametrize('price,qty,discount', [
        ('19.99', 3, '0'),
        ('0.33', 7, '12.5'),
        ('1234.56', 11, '3'),
        ('9.95', 1, '33.33'),
    ])
    def test_line_total_matches_unit_price_times_quantity(self, price, qty, discount):
        totals = calculate_totals([line(price, qty=qty, discount=discount)], [])
        result = totals.lines[0]

        assert round_money(result.line_net) == round_money(result.discounted_unit_price * qty)

    def test_no_intermediate_rounding(self):
        # 3 x 0.333... would drift if each line were rounded first
        totals = calculate_totals([line('1', qty=1, discount='66.6666', id=i) for i in range(1, 4)], [])

        assert totals.net_total == Decimal('1') * (1 - Decimal('66.6666') / 100) * 3

    def test_empty_cart(self):
        totals = calculate_totals([], [])

        assert totals.net_total == 0
        assert totals.tax_total == 0
        assert totals.gross_total == 0


class TestDiscountCodes:
    """Code discount on the pre-code net total."""

    def test_percentage_code(self):
        totals = calculate_totals([line('200.00')], [], percent('10'))

        assert totals.pre_code_net_total == Decimal('200.00')
        assert totals.code_discount == Decimal('20.00')
        assert totals.net_total == Decimal('180.00')

    def test_fixed_code_is_capped_at_net_total(self):
        totals = calculate_totals([line('30.00')], [], fixed('50'))

        assert totals.code_discount == Decimal('30.00')
        assert totals.net_total == Decimal('0.00')
        assert totals.tax_total == 0
        assert totals.gross_total == 0

    def test_fixed_code_below_total(self):
        totals = calculate_totals([line('80.00')], [], fixed('50'))

        assert totals.code_discount == Decimal('50')
        assert totals.net_total == Decimal('30.00')
        assert round_money(totals.tax_total) == Decimal('5.70')

    def test_code_discount_is_separate_from_item_discounts(self):
        totals = calculate_totals([line('100', qty=2, discount='10')], [], percent('10'))

        assert totals.discount_total == Decimal('20')
        assert totals.code_discount == Decimal('18')
        assert totals.net_total == Decimal('162')

    def test_unknown_discount_type_is_refused(self):
        bogus = AppliedDiscount(id=3, code='X', type='bogo', value=Decimal('1'))

        with pytest.raises(PricingError):
            code_discount_amount(bogus, Decimal('100'))


class TestVehicleTax:
    """VAT for vehicle lines and mixed carts."""

    def test_margin_scheme_vehicle_alone_has_no_tax(self):
        totals = calculate_totals([], [vehicle('5000.00', margin=True)])

        assert totals.tax_total == 0
        assert totals.net_total == Decimal('5000.00')
        assert totals.gross_total == totals.net_total

    def test_regular_vehicle_is_taxed(self):
        totals = calculate_totals([], [vehicle('10000.00')])

        assert totals.tax_total == Decimal('1900.00')
        assert totals.gross_total == Decimal('11900.00')

    def test_margin_vehicle_with_product_is_taxed_on_combined_net(self):
        totals = calculate_totals([line('100.00')], [vehicle('5000.00', margin=True)])

        assert totals.net_total == Decimal('5100.00')
        assert totals.tax_total == Decimal('969.00')
        # Per-line taxes only cover the product
        assert totals.line_tax_total == Decimal('19.00')

    def test_vehicle_discount(self):
        totals = calculate_totals([], [vehicle('10000', discount='5')])

        assert totals.lines[0].quantity == 1
        assert totals.net_total == Decimal('9500')
        assert totals.discount_total == Decimal('500')

    def test_custom_vat_rate(self):
        totals = calculate_totals([line('100')], [], vat_rate=Decimal('7'))

        assert totals.tax_total == Decimal('7')


class TestInvalidInput:
    """Inconsistent data is refused, never clamped."""

    @pytest.mark.parametrize('kwargs', [
        {'price': '-1'},
        {'discount': '101'},
        {'discount': '-5'},
        {'tax_rate': '-19'},
        {'qty': 0},
        {'qty': -3},
    ])
    def test_refused(self, kwargs):
        with pytest.raises(PricingError):
            calculate_totals([line(**kwargs)], [])

    def test_non_integer_quantity(self):
        bad = line()
        bad.quantity = 1.5

        with pytest.raises(PricingError):
            calculate_totals([bad], [])

    def test_percentage_code_above_hundred(self):
        with pytest.raises(PricingError):
            calculate_totals([line()], [], percent('150'))


def test_totals_to_dict_rounds_for_presentation():
    totals = calculate_totals([line('0.333', qty=3)], [])
    data = totals.to_dict()

    assert data['net_total'] == '1.00'
    assert data['tax_total'] == '0.19'
    assert data['lines'][0]['line_net'] == '1.00'
