from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from money import format_amount, to_cents
from pricing import Instant, effective_price, is_discount_active, order_total, price_lines, shipping_charge
from schemas import Cart, CheckoutQuote, PricedCart, PricedCartLine


def price_cart(cart: Cart, now: Instant = None) -> PricedCart:
    """Reprice every line locally; the backend's own totals are not trusted."""
    if now is None:
        now = datetime.now(timezone.utc)
    lines = []
    for line in cart.items:
        data = line.model_dump()
        if line.item is not None:
            unit = effective_price(line.item, now)
            data.update(
                discount_active=is_discount_active(line.item, now),
                unit_price=to_cents(line.item.price),
                effective_unit_price=to_cents(unit),
                line_total=to_cents(unit * line.quantity),
            )
        lines.append(PricedCartLine(**data))

    summary = price_lines(((line.item, line.quantity) for line in cart.items), now)
    return PricedCart(
        id=cart.id,
        user_id=cart.user_id,
        items=lines,
        subtotal=to_cents(summary.subtotal),
        total_discount=to_cents(summary.total_discount),
        total=to_cents(summary.subtotal),
        item_count=summary.item_count,
    )


def quote(cart: Cart, free_threshold: Decimal, charge: Decimal, currency: str = "INR", symbol: str = "₹", now: Instant = None) -> CheckoutQuote:
    summary = price_lines(((line.item, line.quantity) for line in cart.items), now)
    shipping = shipping_charge(summary.subtotal, free_threshold, charge)
    total = order_total(summary.subtotal, shipping)
    return CheckoutQuote(
        subtotal=to_cents(summary.subtotal),
        total_discount=to_cents(summary.total_discount),
        shipping_charges=to_cents(shipping),
        total_amount=to_cents(total),
        item_count=summary.item_count,
        free_shipping_threshold=to_cents(free_threshold),
        currency=currency,
        display_total=format_amount(total, symbol),
    )


def stock_problem(cart: Cart) -> Optional[str]:
    """First reason the cart cannot be ordered, or None."""
    if not cart.items:
        return "Cart is empty. Please add items to cart before checkout."
    for line in cart.items:
        if line.item is None:
            return f"Item with ID {line.item_id} not found"
        if line.item.stock < line.quantity:
            return f"Insufficient stock for {line.item.title}. Only {line.item.stock} available."
    return None
