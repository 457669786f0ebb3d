"""
Order pricing rules shared by the cart and checkout flows.

All amounts are Decimals rounded half-up to cents.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal('0.01')
TAX_RATE = Decimal('0.08')
FREE_SHIPPING_THRESHOLD = Decimal('100')
FLAT_SHIPPING_FEE = Decimal('10.00')

PROMO_SAVE10 = 'SAVE10'
PROMO_FREESHIP = 'FREESHIP'


def to_money(value) -> Decimal:
    """Convert a number or numeric string to a cent-rounded Decimal. Raises ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_tax(subtotal: Decimal) -> Decimal:
    return (subtotal * TAX_RATE).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_shipping(subtotal: Decimal) -> Decimal:
    return Decimal('0.00') if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE


def calculate_discount(promo_code, subtotal: Decimal, shipping: Decimal) -> Decimal:
    # Unknown codes are ignored rather than rejected.
    if promo_code == PROMO_SAVE10:
        return (subtotal * Decimal('0.10')).quantize(CENTS, rounding=ROUND_HALF_UP)
    if promo_code == PROMO_FREESHIP:
        return shipping
    return Decimal('0.00')


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal


def calculate_totals(lines, promo_code=None, shipping=None) -> OrderTotals:
    """
    Price a set of `(unit_price, quantity)` lines.

    Shipping follows the flat-rate policy unless an explicit amount is given
    (the checkout flow passes the client's shipping cost).
    """
    subtotal = sum((to_money(price) * quantity for price, quantity in lines), Decimal('0.00'))
    subtotal = subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)
    tax = calculate_tax(subtotal)
    shipping = calculate_shipping(subtotal) if shipping is None else to_money(shipping)
    discount = calculate_discount(promo_code, subtotal, shipping)
    total = subtotal + tax + shipping - discount
    return OrderTotals(subtotal=subtotal, tax=tax, shipping=shipping, discount=discount, total=total)
