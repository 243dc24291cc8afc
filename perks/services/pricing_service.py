"""
Pricing service - line prices, quantity slabs and points conversion.

All functions are pure: the currency-per-point rate is passed in by the
caller (see settings_service.CheckoutSettings) instead of being read here.
"""
from decimal import Decimal, InvalidOperation, ROUND_CEILING
from typing import Any, Dict, List, Optional

from perks.exceptions import PriceSlabError

CENTS = Decimal('0.01')


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a price-like value; None when missing or not a finite number."""
    if value is None or value == '':
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise PriceSlabError(f'{field} must be an integer')
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PriceSlabError(f'{field} must be an integer')
    if not number.is_finite() or number != number.to_integral_value():
        raise PriceSlabError(f'{field} must be an integer')
    return int(number)


def validate_price_slabs(slabs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate and normalise a product's quantity price slabs.

    Each slab is ``{"minQty": int >= 1, "maxQty": int >= minQty or None, "price": >= 0}``.
    Ranges may not overlap and only one slab may be open-ended.

    Returns:
        The slabs sorted by minQty, with prices as 2-decimal strings.

    Raises:
        PriceSlabError: on any malformed or overlapping slab.
    """
    if not isinstance(slabs, (list, tuple)):
        raise PriceSlabError('Price slabs must be a list')

    normalized = []
    for slab in slabs:
        if not isinstance(slab, dict):
            raise PriceSlabError('Each price slab must be an object')

        min_qty = _to_int(slab.get('minQty', 1), 'minQty')
        if min_qty < 1:
            raise PriceSlabError('minQty must be at least 1')

        raw_max = slab.get('maxQty')
        max_qty = None if raw_max is None else _to_int(raw_max, 'maxQty')
        if max_qty is not None and max_qty < min_qty:
            raise PriceSlabError(f'maxQty ({max_qty}) cannot be lower than minQty ({min_qty})')

        price = _to_decimal(slab.get('price'))
        if price is None or price < 0:
            raise PriceSlabError('Slab price must be a non-negative number')

        normalized.append({
            'minQty': min_qty,
            'maxQty': max_qty,
            'price': str(price.quantize(CENTS)),
        })

    normalized.sort(key=lambda s: s['minQty'])

    open_ended = [s for s in normalized if s['maxQty'] is None]
    if len(open_ended) > 1:
        raise PriceSlabError('Only one open-ended price slab is allowed')

    for previous, current in zip(normalized, normalized[1:]):
        if previous['maxQty'] is None or current['minQty'] <= previous['maxQty']:
            raise PriceSlabError(
                f"Price slabs overlap: {previous['minQty']}-{previous['maxQty'] or '+'} "
                f"and {current['minQty']}-{current['maxQty'] or '+'}"
            )

    return normalized


def _slab_contains(slab: Dict[str, Any], quantity: int) -> bool:
    low = _to_decimal(slab.get('minQty', 1))
    high = _to_decimal(slab.get('maxQty'))
    if low is not None and quantity < low:
        return False
    if high is not None and quantity > high:
        return False
    return True


def resolve_line_price(product, quantity: int) -> Decimal:
    """
    Total price of a cart line (not the unit price).

    A matching slab's price is the fixed total for the whole line. Without
    slabs, or when no slab covers the quantity, the line costs
    unit price x quantity.

    Raises:
        PriceSlabError: if more than one slab covers the quantity.
    """
    try:
        qty = max(1, int(quantity or 1))
    except (TypeError, ValueError):
        qty = 1

    unit_price = _to_decimal(getattr(product, 'price', None)) or Decimal('0')
    linear_total = (unit_price * qty).quantize(CENTS)

    slabs = getattr(product, 'price_slabs', None) or []
    if not slabs:
        return linear_total

    matches = [slab for slab in slabs if isinstance(slab, dict) and _slab_contains(slab, qty)]
    if not matches:
        return linear_total
    if len(matches) > 1:
        raise PriceSlabError(
            f'Ambiguous price slabs for "{getattr(product, "name", "product")}" at quantity {qty}'
        )

    slab_price = _to_decimal(matches[0].get('price'))
    if slab_price is None:
        return linear_total
    return slab_price.quantize(CENTS)


def _check_rate(currency_per_point) -> Decimal:
    rate = _to_decimal(currency_per_point)
    if rate is None or rate <= 0:
        raise ValueError(f'currency_per_point must be greater than 0, got {currency_per_point!r}')
    return rate


def points_for_amount(amount, currency_per_point) -> int:
    """Points needed to cover a currency amount: ceil(amount / rate)."""
    rate = _check_rate(currency_per_point)
    value = _to_decimal(amount)
    if value is None or value < 0:
        raise ValueError(f'amount must be a non-negative number, got {amount!r}')
    return int((value / rate).to_integral_value(rounding=ROUND_CEILING))


def amount_for_points(points, currency_per_point) -> int:
    """Currency needed to buy a number of points: ceil(points * rate)."""
    rate = _check_rate(currency_per_point)
    if points < 0:
        raise ValueError(f'points must be non-negative, got {points!r}')
    return int((Decimal(points) * rate).to_integral_value(rounding=ROUND_CEILING))
