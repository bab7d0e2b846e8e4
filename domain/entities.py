"""Domain Entities - Aggregates"""
import random
import string

from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional, List, Dict, Set
from decimal import Decimal

from domain.enums import (
    LocationKind, ReservationStatus, OrderStatus, PaymentMethod, BookingChannel
)
from domain.errors import (
    InvalidDateRangeError, InvalidPartySizeError, CapacityExceededError,
    InvalidAmountError, OverpaymentError, IllegalTransitionError
)
from domain.value_objects import EPSILON, StayDates, Money, Payment, Location


RESERVATION_TRANSITIONS: Dict[ReservationStatus, Set[ReservationStatus]] = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.CHECKED_IN, ReservationStatus.CANCELLED},
    ReservationStatus.CHECKED_IN: {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED},
    ReservationStatus.CHECKED_OUT: set(),
    ReservationStatus.CANCELLED: set(),
}

ORDER_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class PaymentLedger(BaseModel):
    """Billing state shared by reservations and orders.

    ``amount_paid`` and ``balance_due`` are always derived from the payment
    entries, so the ``balance = total - paid`` invariant cannot drift.
    """

    total_amount: Optional[Decimal] = None
    currency: str = "EUR"
    payments: List[Payment] = []

    # Loyalty bookkeeping, set once and never cleared
    points_granted: int = 0
    loyalty_accrued: bool = False

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    @property
    def amount_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def balance_due(self) -> Decimal:
        return (self.total_amount or Decimal("0")) - self.amount_paid

    def check_payment(self, amount, tolerance: Decimal = EPSILON) -> Decimal:
        """Validate an amount against the current balance, without applying it.

        Amounts within ``tolerance`` above the balance are accepted and
        capped at the balance, so the amount paid never exceeds the total.
        """
        amount = _to_decimal(amount)
        if amount <= 0:
            raise InvalidAmountError(f"Payment amount must be greater than 0, got {amount}")
        balance = self.balance_due
        if balance <= 0 or amount > balance + tolerance:
            raise OverpaymentError(requested=amount, balance_due=balance)
        return min(amount, balance)

    def apply_payment(
        self,
        method: PaymentMethod,
        amount,
        note: Optional[str] = None,
        tolerance: Decimal = EPSILON
    ) -> Payment:
        """Append a payment entry"""
        amount = self.check_payment(amount, tolerance)
        payment = Payment(method=PaymentMethod(method), amount=amount, note=note)
        self.payments.append(payment)
        self.touch()
        return payment

    def record_loyalty_grant(self, points: int) -> None:
        """Mark loyalty as processed for this entity"""
        if self.loyalty_accrued:
            raise ValueError("Loyalty points already granted")
        self.points_granted += points
        self.loyalty_accrued = True
        self.touch()

    def touch(self) -> None:
        self.modified_at = datetime.utcnow()
        self.version += 1


class Reservation(PaymentLedger):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    confirmation_code: str

    # References to other contexts
    host_id: str
    location_id: str
    kind: LocationKind
    client_id: Optional[str] = None
    client_name: Optional[str] = None

    # Booking details
    stay: StayDates
    party_size: int = Field(ge=1)
    status: ReservationStatus = ReservationStatus.PENDING
    channel: BookingChannel = BookingChannel.DIRECT
    notes: Optional[str] = None
    has_pets: Optional[bool] = None
    checkout_notes: Optional[str] = None

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        location: Location,
        stay: StayDates,
        party_size: int,
        total_amount: Optional[Money],
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        channel: BookingChannel = BookingChannel.DIRECT,
        notes: Optional[str] = None,
        has_pets: Optional[bool] = None
    ) -> "Reservation":
        """Create new reservation with validation"""
        stay = Reservation._validate_stay(location.kind, stay)
        Reservation._validate_party_size(party_size, location.capacity)

        return Reservation(
            confirmation_code=Reservation.generate_confirmation_code(),
            host_id=location.host_id,
            location_id=location.location_id,
            kind=location.kind,
            client_id=client_id,
            client_name=client_name,
            stay=stay,
            party_size=party_size,
            total_amount=total_amount.amount if total_amount else None,
            currency=total_amount.currency if total_amount else location.currency,
            status=ReservationStatus.PENDING,
            channel=channel,
            notes=notes,
            has_pets=has_pets if location.kind == LocationKind.ROOM else None
        )

    # ==================== MODIFICATION METHODS ====================
    def reschedule(
        self,
        location: Location,
        stay: StayDates,
        party_size: int,
        total_amount: Optional[Money]
    ) -> None:
        """Move the booking to new dates, location or party size"""
        if not self.is_modifiable():
            raise IllegalTransitionError(
                self.status.value, self.status.value,
                f"Cannot modify reservation in {self.status.value} status"
            )
        stay = Reservation._validate_stay(location.kind, stay)
        Reservation._validate_party_size(party_size, location.capacity)

        # A cheaper booking must still cover what was already paid
        new_total = total_amount.amount if total_amount else Decimal("0")
        if self.amount_paid > new_total + EPSILON:
            raise OverpaymentError(requested=self.amount_paid, balance_due=new_total)

        self.location_id = location.location_id
        self.kind = location.kind
        self.stay = stay
        self.party_size = party_size
        self.total_amount = total_amount.amount if total_amount else None
        if total_amount:
            self.currency = total_amount.currency
        if location.kind != LocationKind.ROOM:
            self.has_pets = None
        self.touch()

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(self, new_status: ReservationStatus) -> bool:
        """Move to ``new_status``. Returns False when already there."""
        new_status = ReservationStatus(new_status)
        if new_status == self.status:
            return False
        if new_status not in RESERVATION_TRANSITIONS[self.status]:
            raise IllegalTransitionError(self.status.value, new_status.value)
        self.status = new_status
        self.touch()
        return True

    # ==================== QUERY METHODS ====================
    def is_active(self) -> bool:
        """Active reservations hold their dates on the calendar"""
        return self.status != ReservationStatus.CANCELLED

    def is_modifiable(self) -> bool:
        return not self.is_terminal()

    def is_terminal(self) -> bool:
        return not RESERVATION_TRANSITIONS[self.status]

    def get_nights(self) -> int:
        return self.stay.nights()

    # ==================== PRIVATE VALIDATION METHODS ====================
    @staticmethod
    def _validate_stay(kind: LocationKind, stay: StayDates) -> StayDates:
        if kind == LocationKind.ROOM:
            if stay.departure is None:
                raise InvalidDateRangeError("Departure date is required for rooms")
            if stay.departure <= stay.arrival:
                raise InvalidDateRangeError("Departure must be after arrival")
            return stay
        if stay.departure is not None and stay.departure != stay.arrival:
            raise InvalidDateRangeError("Table bookings cover a single day")
        return StayDates(arrival=stay.arrival)

    @staticmethod
    def _validate_party_size(party_size: int, capacity: Optional[int]) -> None:
        if party_size < 1:
            raise InvalidPartySizeError("At least 1 person is required")
        if capacity is not None and party_size > capacity:
            raise CapacityExceededError(party_size=party_size, capacity=capacity)

    @staticmethod
    def generate_confirmation_code() -> str:
        """Generate a random 8 character confirmation code"""
        return ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))


class Order(PaymentLedger):
    """Order Aggregate Root Entity"""

    order_id: UUID = Field(default_factory=uuid4)
    host_id: str
    location_id: str
    service_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None

    class Config:
        from_attributes = True

    @staticmethod
    def create(
        location: Location,
        total_amount: Optional[Money],
        service_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        notes: Optional[str] = None
    ) -> "Order":
        return Order(
            host_id=location.host_id,
            location_id=location.location_id,
            service_id=service_id,
            client_id=client_id,
            client_name=client_name,
            total_amount=total_amount.amount if total_amount else None,
            currency=total_amount.currency if total_amount else location.currency,
            notes=notes
        )

    def transition_to(self, new_status: OrderStatus) -> bool:
        """Move to ``new_status``. Returns False when already there."""
        new_status = OrderStatus(new_status)
        if new_status == self.status:
            return False
        if new_status not in ORDER_TRANSITIONS[self.status]:
            raise IllegalTransitionError(self.status.value, new_status.value)
        self.status = new_status
        self.touch()
        return True
