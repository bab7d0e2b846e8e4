"""Pricing Calculator"""
from datetime import date
from decimal import Decimal
from typing import Optional

from domain.enums import PricingModel
from domain.value_objects import Location, Money, StayDates


def price(
    location: Location,
    arrival: date,
    departure: Optional[date],
    party_size: int
) -> Optional[Money]:
    """Compute the total for a booking of ``location``.

    Per-night rules charge for at least one night, so a same-day or inverted
    range is billed as a single night. Per-person rules multiply by the
    party size; fixed fees ignore both duration and party size.

    Returns None when the location declares no price, which callers must
    read as "price not specified" rather than free.
    """
    rule = location.pricing_rule
    if rule is None:
        return None

    if rule.model == PricingModel.FIXED_FEE:
        return Money(amount=rule.amount, currency=location.currency)

    nights = StayDates(arrival=arrival, departure=departure).nights()
    total = rule.amount * Decimal(nights)
    if rule.per_person:
        total *= Decimal(party_size)
    return Money(amount=total, currency=location.currency)
