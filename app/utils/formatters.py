"""
Formatting helpers for JSON payloads, e-mails and PDFs.
German conventions: thousands separator '.', decimal separator ','.

Amounts are kept unrounded in the pricing code; rounding to cents happens
here, at presentation or persistence time only.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import datetime
from typing import Union, Optional

CENT = Decimal('0.01')

Number = Union[int, float, Decimal, str, None]


def to_decimal(value: Number) -> Decimal:
    """Convert a number-like value to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal('0')
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """
    Round an amount to cents (commercial rounding, half up).

    Examples:
        round_money(Decimal('34.2')) -> Decimal('34.20')
        round_money(Decimal('0.005')) -> Decimal('0.01')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Number) -> str:
    """Plain two-decimal string for JSON payloads ("1234.50")."""
    return f"{round_money(value):.2f}"


def num_de(value: Number, decimals: Optional[int] = 2) -> str:
    """
    Format a number in German style.

    Examples:
        num_de(1500) -> "1.500,00"
        num_de(1500.5, decimals=1) -> "1.500,5"
        num_de(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)

    sign = "-" if num < 0 else ""
    num_str = str(abs(num))
    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
    else:
        integer_part, decimal_part = num_str, ""

    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    integer_formatted = '.'.join(groups)[::-1]

    if decimal_part:
        return f"{sign}{integer_formatted},{decimal_part}"
    return f"{sign}{integer_formatted}"


def money_de(value: Number) -> str:
    """
    Format a euro amount for display.

    Examples:
        money_de(Decimal('1234.5')) -> "1.234,50 €"
        money_de(0) -> "0,00 €"
    """
    formatted = num_de(value, decimals=2)
    if formatted == "-":
        return formatted
    return f"{formatted} €"


def percent_de(value: Number) -> str:
    """Format a percentage, dropping insignificant decimals ("19 %", "7,5 %")."""
    if value is None or value == "":
        return "-"
    num = to_decimal(value).normalize()
    text = f"{num:f}".replace('.', ',')
    return f"{text} %"


def datetime_de(value: Union[datetime, None], with_time: bool = True) -> str:
    """Format a datetime as DD.MM.YYYY HH:MM."""
    if value is None or not isinstance(value, datetime):
        return "-"
    if with_time:
        return value.strftime("%d.%m.%Y %H:%M")
    return value.strftime("%d.%m.%Y")
