"""Domain Value Objects"""
from pydantic import BaseModel, Field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from domain.enums import LocationKind, PricingModel, PaymentMethod

# Tolerance for monetary comparisons, one cent
EPSILON = Decimal("0.01")


class StayDates(BaseModel):
    """Value Object for a booked date span.

    Tables book a single day: ``departure`` is absent or equal to ``arrival``.
    """
    arrival: date
    departure: Optional[date] = None

    def nights(self) -> int:
        """Number of billable nights, never less than one"""
        if self.departure is None:
            return 1
        return max(1, (self.departure - self.arrival).days)

    def interval(self, kind: LocationKind) -> Tuple[date, date]:
        """Half-open ``[start, end)`` span occupied on the calendar"""
        if kind == LocationKind.TABLE or self.departure is None:
            return self.arrival, self.arrival + timedelta(days=1)
        return self.arrival, self.departure

    def overlaps_month(self, year: int, month: int) -> bool:
        """Check whether the stay touches the given calendar month"""
        month_start = date(year, month, 1)
        if month == 12:
            month_end = date(year + 1, 1, 1) - timedelta(days=1)
        else:
            month_end = date(year, month + 1, 1) - timedelta(days=1)
        last_day = self.departure or self.arrival
        return self.arrival <= month_end and last_day >= month_start

    class Config:
        frozen = True


class Money(BaseModel):
    """Value Object for monetary amounts"""
    amount: Decimal = Field(ge=0)
    currency: str = "EUR"

    class Config:
        frozen = True


class PricingRule(BaseModel):
    """How a location charges for a booking"""
    model: PricingModel
    amount: Decimal = Field(ge=0)
    per_person: bool = False

    class Config:
        frozen = True


class Location(BaseModel):
    """Bookable room or table, as published by the location catalog"""
    location_id: str
    host_id: str
    name: str = ""
    kind: LocationKind
    capacity: Optional[int] = Field(default=None, ge=1)
    pricing_rule: Optional[PricingRule] = None
    currency: str = "EUR"

    class Config:
        frozen = True


class Payment(BaseModel):
    """Ledger entry for money received against a reservation or order"""
    method: PaymentMethod
    amount: Decimal = Field(gt=0)
    paid_at: datetime = Field(default_factory=datetime.utcnow)
    note: Optional[str] = None

    class Config:
        frozen = True


class LoyaltyConfig(BaseModel):
    """Host loyalty programme settings"""
    enabled: bool = False
    points_per_night_room: int = Field(default=0, ge=0)
    points_per_table_booking: int = Field(default=0, ge=0)
    points_per_currency_unit_spent: Decimal = Field(default=Decimal("0"), ge=0)
    signup_bonus: int = Field(default=0, ge=0)

    class Config:
        frozen = True
