"""
Unit tests for German formatting helpers.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.utils.formatters import round_money, money_str, num_de, money_de, percent_de, datetime_de


@pytest.mark.parametrize('value,expected', [
    (Decimal('34.2'), Decimal('34.20')),
    (Decimal('0.005'), Decimal('0.01')),
    (Decimal('2.675'), Decimal('2.68')),
    (Decimal('-1.005'), Decimal('-1.01')),
    ('10', Decimal('10.00')),
    (None, Decimal('0.00')),
])
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_money_str():
    assert money_str(Decimal('1234.5')) == '1234.50'


def test_num_de_groups_thousands():
    assert num_de(1500) == '1.500,00'
    assert num_de(Decimal('1234567.891')) == '1.234.567,89'
    assert num_de(1500.5, decimals=1) == '1.500,5'
    assert num_de(None) == '-'
    assert num_de('abc') == '-'


def test_money_de():
    assert money_de(Decimal('1234.5')) == '1.234,50 €'
    assert money_de(0) == '0,00 €'
    assert money_de(Decimal('-20')) == '-20,00 €'


def test_percent_de():
    assert percent_de(Decimal('19.00')) == '19 %'
    assert percent_de(Decimal('7.5')) == '7,5 %'


def test_dates():
    assert datetime_de(datetime(2026, 3, 9, 14, 5)) == '09.03.2026 14:05'
    assert datetime_de(None) == '-'
    assert datetime_de(datetime(2026, 3, 9, 14, 5), with_time=False) == '09.03.2026'
