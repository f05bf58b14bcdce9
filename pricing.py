from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional, Protocol, Union

# Discount resolution rule. Every priced surface (catalog, cart, checkout,
# order lines) goes through is_discount_active / effective_price.

HUNDRED = Decimal(100)

Instant = Union[datetime, date, str, None]


class Discountable(Protocol):
    price: Any
    discount: Any
    discount_start_date: Any
    discount_end_date: Any


@dataclass(frozen=True)
class PriceSummary:
    subtotal: Decimal
    total_discount: Decimal
    item_count: int


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    # str() keeps 19.99 as 19.99 instead of its binary expansion
    return Decimal(str(value))


def parse_instant(value: Instant) -> Optional[datetime]:
    """Turn an ISO 8601 string, date or datetime into an aware UTC datetime.

    Date-only values mean midnight UTC. Returns None for anything that is
    not a valid date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_set(value: Instant) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def is_discount_active(item: Discountable, now: Instant = None) -> bool:
    percent = _decimal(item.discount)
    if percent <= 0:
        return False

    start_raw = item.discount_start_date
    end_raw = item.discount_end_date
    if not _is_set(start_raw) and not _is_set(end_raw):
        # no window: on until an admin removes it
        return True

    start = parse_instant(start_raw)
    end = parse_instant(end_raw)
    if start is None or end is None:
        return False

    current = parse_instant(now) if now is not None else datetime.now(timezone.utc)
    if current is None:
        return False
    return start <= current <= end


def effective_price(item: Discountable, now: Instant = None) -> Decimal:
    price = _decimal(item.price)
    if not is_discount_active(item, now):
        return price
    return price * (HUNDRED - _decimal(item.discount)) / HUNDRED


def line_total(item: Discountable, quantity: int, now: Instant = None) -> Decimal:
    return effective_price(item, now) * quantity


def line_savings(item: Discountable, quantity: int, now: Instant = None) -> Decimal:
    return (_decimal(item.price) - effective_price(item, now)) * quantity


def price_lines(lines: Iterable[tuple[Optional[Discountable], int]], now: Instant = None) -> PriceSummary:
    """Sum exact line totals; rounding is left to the caller."""
    if now is None:
        # one clock reading for the whole cart
        now = datetime.now(timezone.utc)
    subtotal = Decimal(0)
    total_discount = Decimal(0)
    item_count = 0
    for item, quantity in lines:
        item_count += quantity
        if item is None:
            continue
        subtotal += line_total(item, quantity, now)
        total_discount += line_savings(item, quantity, now)
    return PriceSummary(subtotal=subtotal, total_discount=total_discount, item_count=item_count)


def shipping_charge(subtotal: Decimal, free_threshold: Decimal, charge: Decimal) -> Decimal:
    if subtotal >= free_threshold:
        return Decimal(0)
    return _decimal(charge)


def order_total(subtotal: Decimal, shipping: Decimal) -> Decimal:
    return subtotal + shipping
