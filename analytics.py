from __future__ import annotations
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from money import to_cents
from schemas import Money, Payment, Review, ReviewPage, WireModel


class PaymentSummary(WireModel):
    total_revenue: Money
    pending_amount: Money
    refunded_amount: Money
    payment_count: int
    by_status: dict[str, int]


def summarize_payments(payments: Iterable[Payment]) -> PaymentSummary:
    revenue = Decimal(0)
    pending = Decimal(0)
    refunded = Decimal(0)
    counts: Counter[str] = Counter()
    for p in payments:
        counts[p.payment_status] += 1
        if p.payment_status == "paid":
            # partial refunds leave the payment "paid"
            revenue += p.amount - (p.refund_amount or 0)
            refunded += p.refund_amount or 0
        elif p.payment_status == "pending":
            pending += p.amount
        elif p.payment_status == "refunded":
            refunded += p.refund_amount if p.refund_amount is not None else p.amount
    return PaymentSummary(
        total_revenue=to_cents(revenue),
        pending_amount=to_cents(pending),
        refunded_amount=to_cents(refunded),
        payment_count=sum(counts.values()),
        by_status=dict(counts),
    )


def summarize_reviews(reviews: Iterable[Review]) -> ReviewPage:
    reviews = list(reviews)
    distribution = {star: 0 for star in (5, 4, 3, 2, 1)}
    for r in reviews:
        distribution[r.rating] = distribution.get(r.rating, 0) + 1
    average = Decimal(sum(r.rating for r in reviews)) / len(reviews) if reviews else Decimal(0)
    return ReviewPage(
        reviews=reviews,
        # half-up, as the backend rounds
        average_rating=float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)),
        rating_count=len(reviews),
        rating_distribution=distribution,
    )
