from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

QUANTITY_QUANT = Decimal("0.001")
ZERO_QUANTITY = Decimal("0.000")

# Numeric(12, 3) quantity and Numeric(12, 2) money columns.
QUANTITY_MAX_DIGITS = 12
QUANTITY_DECIMAL_PLACES = 3
MONEY_MAX_DIGITS = 12
MONEY_DECIMAL_PLACES = 2
QUANTITY_LIMIT = Decimal(10) ** (QUANTITY_MAX_DIGITS - QUANTITY_DECIMAL_PLACES)
MONEY_LIMIT = Decimal(10) ** (MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES)


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def to_quantity(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


def fits_quantity(value: Decimal | int | float | str) -> bool:
    """True when ``value`` rounds to something a quantity column can store."""
    raw = Decimal(str(value))
    return raw.is_finite() and abs(raw) < QUANTITY_LIMIT and abs(to_quantity(raw)) < QUANTITY_LIMIT


def fits_money(value: Decimal | int | float | str) -> bool:
    raw = Decimal(str(value))
    return raw.is_finite() and abs(raw) < MONEY_LIMIT and abs(to_money(raw)) < MONEY_LIMIT


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO_MONEY
    return to_money(part / whole * 100)
