from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, Optional

from money import to_cents
from pricing import Instant, effective_price, is_discount_active
from schemas import Item, PricedItem


def search_items(items: Iterable[Item], query: Optional[str]) -> list[Item]:
    """Case-insensitive substring match on title, description and category."""
    items = list(items)
    needle = (query or "").strip().lower()
    if not needle:
        return items
    return [
        item for item in items
        if needle in item.title.lower()
        or needle in (item.description or "").lower()
        or needle in (item.category or "").lower()
    ]


def filter_items(items: Iterable[Item], category: Optional[str] = None, active_only: bool = True) -> list[Item]:
    result = []
    for item in items:
        if active_only and not item.is_active:
            continue
        if category and item.category.lower() != category.lower():
            continue
        result.append(item)
    return result


def price_item(item: Item, now: Instant = None) -> PricedItem:
    if now is None:
        now = datetime.now(timezone.utc)
    active = is_discount_active(item, now)
    effective = effective_price(item, now)
    return PricedItem(
        **item.model_dump(),
        discount_active=active,
        effective_price=to_cents(effective),
        savings=to_cents(item.price - effective),
    )
