"""
Domain layer tests: value objects, pricing, reservation ledger,
calendar index and loyalty calculations
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from domain.calendar import CalendarIndex
from domain.entities import Reservation, Order
from domain.enums import LocationKind, ReservationStatus, OrderStatus, PaymentMethod
from domain.errors import (
    InvalidDateRangeError, InvalidPartySizeError, CapacityExceededError,
    InvalidAmountError, OverpaymentError, IllegalTransitionError
)
from domain.loyalty import points_for_reservation, points_for_order, signup_bonus
from domain.pricing import price
from domain.value_objects import StayDates, Money, LoyaltyConfig


ARRIVAL = date(2024, 7, 20)
DEPARTURE = date(2024, 7, 22)

LOYALTY = LoyaltyConfig(
    enabled=True,
    points_per_night_room=10,
    points_per_table_booking=5,
    points_per_currency_unit_spent=Decimal("1"),
    signup_bonus=50,
)


def make_reservation(location, arrival=ARRIVAL, departure=DEPARTURE, party_size=2, **kwargs):
    return Reservation.create(
        location=location,
        stay=StayDates(arrival=arrival, departure=departure),
        party_size=party_size,
        total_amount=price(location, arrival, departure, party_size),
        **kwargs
    )


# ============================================================================
# VALUE OBJECTS
# ============================================================================

class TestStayDates:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_nights(self):
        assert StayDates(arrival=ARRIVAL, departure=DEPARTURE).nights() == 2

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_nights_clamped_to_one(self):
        assert StayDates(arrival=ARRIVAL, departure=ARRIVAL).nights() == 1
        assert StayDates(arrival=ARRIVAL, departure=ARRIVAL - timedelta(days=3)).nights() == 1
        assert StayDates(arrival=ARRIVAL).nights() == 1

    @pytest.mark.unit
    @pytest.mark.domain
    def test_table_interval_is_single_day(self):
        stay = StayDates(arrival=ARRIVAL)
        assert stay.interval(LocationKind.TABLE) == (ARRIVAL, ARRIVAL + timedelta(days=1))

    @pytest.mark.unit
    @pytest.mark.domain
    def test_overlaps_month(self):
        stay = StayDates(arrival=date(2024, 7, 30), departure=date(2024, 8, 2))
        assert stay.overlaps_month(2024, 7)
        assert stay.overlaps_month(2024, 8)
        assert not stay.overlaps_month(2024, 9)

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_overlaps_december(self):
        stay = StayDates(arrival=date(2024, 12, 31))
        assert stay.overlaps_month(2024, 12)
        assert not stay.overlaps_month(2025, 1)


# ============================================================================
# PRICING
# ============================================================================

class TestPricing:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_per_night_room(self, room):
        total = price(room, ARRIVAL, DEPARTURE, 2)
        assert total == Money(amount=Decimal("300"), currency="EUR")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_per_person_room(self, per_person_room):
        total = price(per_person_room, ARRIVAL, DEPARTURE, 3)
        assert total.amount == Decimal("300")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_table_fixed_fee_ignores_duration_and_party(self, table):
        assert price(table, ARRIVAL, None, 1).amount == Decimal("10")
        assert price(table, ARRIVAL, ARRIVAL + timedelta(days=5), 4).amount == Decimal("10")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_unpriced_location_returns_none(self, unpriced_room):
        assert price(unpriced_room, ARRIVAL, DEPARTURE, 2) is None

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_inverted_range_billed_as_one_night(self, room):
        assert price(room, DEPARTURE, ARRIVAL, 1).amount == Decimal("150")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_price_is_deterministic(self, per_person_room):
        first = price(per_person_room, ARRIVAL, DEPARTURE, 3)
        second = price(per_person_room, ARRIVAL, DEPARTURE, 3)
        assert first == second


# ============================================================================
# RESERVATION ENTITY
# ============================================================================

class TestReservationEntity:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_create_reservation(self, room):
        reservation = make_reservation(room, client_id="client-1")
        assert reservation.status == ReservationStatus.PENDING
        assert reservation.kind == LocationKind.ROOM
        assert reservation.total_amount == Decimal("300")
        assert reservation.amount_paid == Decimal("0")
        assert reservation.balance_due == Decimal("300")
        assert len(reservation.confirmation_code) == 8

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_room_requires_departure(self, room):
        with pytest.raises(InvalidDateRangeError, match="required"):
            make_reservation(room, departure=None)

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    @pytest.mark.parametrize("departure", [ARRIVAL, ARRIVAL - timedelta(days=1)])
    def test_room_rejects_equal_or_inverted_dates(self, room, departure):
        with pytest.raises(InvalidDateRangeError):
            make_reservation(room, departure=departure)

    @pytest.mark.unit
    @pytest.mark.domain
    def test_table_is_single_day(self, table):
        reservation = make_reservation(table, departure=ARRIVAL, party_size=4)
        assert reservation.stay.departure is None
        assert reservation.total_amount == Decimal("10")
        with pytest.raises(InvalidDateRangeError):
            make_reservation(table, departure=DEPARTURE)

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_party_size_bounds(self, room):
        with pytest.raises(InvalidPartySizeError):
            make_reservation(room, party_size=0)
        with pytest.raises(CapacityExceededError) as exc:
            make_reservation(room, party_size=3)
        assert exc.value.capacity == 2

    @pytest.mark.unit
    @pytest.mark.domain
    def test_unpriced_reservation_has_no_total(self, unpriced_room):
        reservation = make_reservation(unpriced_room)
        assert reservation.total_amount is None
        assert reservation.balance_due == Decimal("0")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_full_lifecycle(self, room):
        reservation = make_reservation(room)
        for status in (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN, ReservationStatus.CHECKED_OUT):
            assert reservation.transition_to(status) is True
        assert reservation.is_terminal()

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_illegal_transitions(self, room):
        reservation = make_reservation(room)
        with pytest.raises(IllegalTransitionError):
            reservation.transition_to(ReservationStatus.CHECKED_OUT)
        reservation.transition_to(ReservationStatus.CANCELLED)
        with pytest.raises(IllegalTransitionError):
            reservation.transition_to(ReservationStatus.CONFIRMED)

    @pytest.mark.unit
    @pytest.mark.domain
    def test_cancel_from_checked_in(self, room):
        reservation = make_reservation(room)
        reservation.transition_to(ReservationStatus.CONFIRMED)
        reservation.transition_to(ReservationStatus.CHECKED_IN)
        assert reservation.transition_to(ReservationStatus.CANCELLED)
        assert not reservation.is_active()

    @pytest.mark.unit
    @pytest.mark.domain
    def test_same_status_is_noop(self, room):
        reservation = make_reservation(room)
        version = reservation.version
        assert reservation.transition_to(ReservationStatus.PENDING) is False
        assert reservation.version == version

    @pytest.mark.unit
    @pytest.mark.domain
    def test_reschedule_reprices(self, room):
        reservation = make_reservation(room)
        new_departure = ARRIVAL + timedelta(days=4)
        reservation.reschedule(
            room, StayDates(arrival=ARRIVAL, departure=new_departure), 2,
            price(room, ARRIVAL, new_departure, 2)
        )
        assert reservation.total_amount == Decimal("600")
        assert reservation.get_nights() == 4

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_reschedule_below_amount_paid(self, room):
        reservation = make_reservation(room)
        reservation.apply_payment(PaymentMethod.CASH, Decimal("300"))
        with pytest.raises(OverpaymentError):
            reservation.reschedule(
                room, StayDates(arrival=ARRIVAL, departure=ARRIVAL + timedelta(days=1)), 2,
                price(room, ARRIVAL, ARRIVAL + timedelta(days=1), 2)
            )
        assert reservation.total_amount == Decimal("300")

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_reschedule_terminal_rejected(self, room):
        reservation = make_reservation(room)
        reservation.transition_to(ReservationStatus.CANCELLED)
        with pytest.raises(IllegalTransitionError):
            reservation.reschedule(room, reservation.stay, 2, None)


# ============================================================================
# PAYMENT LEDGER
# ============================================================================

class TestPaymentLedger:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_partial_payment_then_overpayment(self, room):
        reservation = make_reservation(room)
        reservation.apply_payment(PaymentMethod.CASH, Decimal("100"))
        assert reservation.amount_paid == Decimal("100")
        assert reservation.balance_due == Decimal("200")

        with pytest.raises(OverpaymentError) as exc:
            reservation.apply_payment(PaymentMethod.CARD, Decimal("250"))
        assert exc.value.balance_due == Decimal("200")
        assert len(reservation.payments) == 1

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), 0])
    def test_non_positive_amount_rejected(self, room, amount):
        reservation = make_reservation(room)
        with pytest.raises(InvalidAmountError):
            reservation.apply_payment(PaymentMethod.CASH, amount)
        assert reservation.payments == []

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_rounding_tolerance(self, room):
        reservation = make_reservation(room)
        reservation.apply_payment(PaymentMethod.CASH, Decimal("100"))
        payment = reservation.apply_payment(PaymentMethod.CARD, Decimal("200.005"))
        assert payment.amount == Decimal("200")
        assert reservation.amount_paid == reservation.total_amount
        assert reservation.balance_due == Decimal("0")
        with pytest.raises(OverpaymentError):
            reservation.apply_payment(PaymentMethod.CASH, Decimal("0.005"))

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_paid_never_exceeds_total(self, per_person_room):
        reservation = make_reservation(per_person_room, party_size=3)
        for amount in ("99.999", "100.004", "100.005"):
            reservation.apply_payment(PaymentMethod.CARD, Decimal(amount))
            assert reservation.amount_paid <= reservation.total_amount
        assert reservation.amount_paid == Decimal("300")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_float_amounts_accepted(self, room):
        reservation = make_reservation(room)
        reservation.apply_payment(PaymentMethod.CASH, 99.99)
        assert reservation.balance_due == Decimal("200.01")

    @pytest.mark.unit
    @pytest.mark.domain
    def test_balance_invariant_over_many_payments(self, per_person_room):
        reservation = make_reservation(per_person_room, party_size=3)
        for amount in ("12.50", "40", "0.75", "100"):
            reservation.apply_payment(PaymentMethod.CARD, Decimal(amount), note="instalment")
            assert reservation.balance_due == reservation.total_amount - reservation.amount_paid
        assert reservation.amount_paid <= reservation.total_amount

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_unpriced_reservation_accepts_no_payment(self, unpriced_room):
        reservation = make_reservation(unpriced_room)
        with pytest.raises(OverpaymentError):
            reservation.apply_payment(PaymentMethod.CASH, Decimal("1"))

    @pytest.mark.unit
    @pytest.mark.domain
    def test_loyalty_grant_recorded_once(self, room):
        reservation = make_reservation(room)
        reservation.record_loyalty_grant(20)
        assert reservation.points_granted == 20
        with pytest.raises(ValueError):
            reservation.record_loyalty_grant(20)
        assert reservation.points_granted == 20


class TestOrderEntity:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_order_lifecycle(self, table):
        order = Order.create(table, Money(amount=Decimal("25.70")), service_id="svc-breakfast")
        assert order.status == OrderStatus.PENDING
        assert order.balance_due == Decimal("25.70")
        order.transition_to(OrderStatus.CONFIRMED)
        order.transition_to(OrderStatus.COMPLETED)
        with pytest.raises(IllegalTransitionError):
            order.transition_to(OrderStatus.CANCELLED)

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_order_cannot_skip_confirmation(self, table):
        order = Order.create(table, None)
        with pytest.raises(IllegalTransitionError):
            order.transition_to(OrderStatus.COMPLETED)


# ============================================================================
# CALENDAR INDEX
# ============================================================================

class TestCalendarIndex:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_overlapping_room_conflicts(self, room):
        calendar = CalendarIndex()
        existing = make_reservation(room)
        calendar.register(existing)
        clash = calendar.conflicts(
            room.location_id, LocationKind.ROOM, date(2024, 7, 21), date(2024, 7, 23)
        )
        assert clash == existing.reservation_id

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_back_to_back_stays_do_not_conflict(self, room):
        calendar = CalendarIndex()
        calendar.register(make_reservation(room))
        assert calendar.conflicts(room.location_id, LocationKind.ROOM, DEPARTURE, DEPARTURE + timedelta(days=2)) is None
        assert calendar.conflicts(room.location_id, LocationKind.ROOM, ARRIVAL - timedelta(days=2), ARRIVAL) is None

    @pytest.mark.unit
    @pytest.mark.domain
    def test_enclosing_range_conflicts(self, room):
        calendar = CalendarIndex()
        existing = make_reservation(room, arrival=date(2024, 7, 10), departure=date(2024, 7, 12))
        calendar.register(existing)
        calendar.register(make_reservation(room, arrival=date(2024, 7, 1), departure=date(2024, 7, 3)))
        clash = calendar.conflicts(room.location_id, LocationKind.ROOM, date(2024, 7, 5), date(2024, 7, 30))
        assert clash == existing.reservation_id

    @pytest.mark.unit
    @pytest.mark.domain
    def test_exclude_own_interval(self, room):
        calendar = CalendarIndex()
        existing = make_reservation(room)
        calendar.register(existing)
        assert calendar.conflicts(
            room.location_id, LocationKind.ROOM, ARRIVAL, DEPARTURE + timedelta(days=1),
            exclude_reservation_id=existing.reservation_id
        ) is None

    @pytest.mark.unit
    @pytest.mark.domain
    def test_table_same_day_rule(self, table):
        calendar = CalendarIndex()
        existing = make_reservation(table, departure=None)
        calendar.register(existing)
        assert calendar.conflicts(table.location_id, LocationKind.TABLE, ARRIVAL, None) == existing.reservation_id
        assert calendar.conflicts(table.location_id, LocationKind.TABLE, ARRIVAL + timedelta(days=1), None) is None

    @pytest.mark.unit
    @pytest.mark.domain
    def test_release(self, room):
        calendar = CalendarIndex()
        existing = make_reservation(room)
        calendar.register(existing)
        assert calendar.release(existing.reservation_id) is True
        assert calendar.release(existing.reservation_id) is False
        assert calendar.conflicts(room.location_id, LocationKind.ROOM, ARRIVAL, DEPARTURE) is None

    @pytest.mark.unit
    @pytest.mark.domain
    def test_locations_are_independent(self, room, per_person_room):
        calendar = CalendarIndex()
        calendar.register(make_reservation(room))
        assert calendar.conflicts(per_person_room.location_id, LocationKind.ROOM, ARRIVAL, DEPARTURE) is None

    @pytest.mark.unit
    @pytest.mark.domain
    def test_rebuild_skips_cancelled(self, room):
        active = make_reservation(room)
        cancelled = make_reservation(room, arrival=date(2024, 8, 1), departure=date(2024, 8, 3))
        cancelled.transition_to(ReservationStatus.CANCELLED)
        calendar = CalendarIndex()
        calendar.rebuild([active, cancelled])
        assert active.reservation_id in calendar
        assert cancelled.reservation_id not in calendar
        assert len(calendar.active_intervals(room.location_id)) == 1

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_register_refuses_overlap(self, room):
        calendar = CalendarIndex()
        calendar.register(make_reservation(room))
        with pytest.raises(ValueError):
            calendar.register(make_reservation(room, arrival=date(2024, 7, 21), departure=date(2024, 7, 25)))

    @pytest.mark.unit
    @pytest.mark.domain
    def test_register_moves_interval(self, room):
        calendar = CalendarIndex()
        reservation = make_reservation(room)
        calendar.register(reservation)
        reservation.reschedule(
            room, StayDates(arrival=date(2024, 9, 1), departure=date(2024, 9, 3)), 2,
            price(room, date(2024, 9, 1), date(2024, 9, 3), 2)
        )
        calendar.register(reservation)
        assert calendar.conflicts(room.location_id, LocationKind.ROOM, ARRIVAL, DEPARTURE) is None
        assert calendar.active_intervals(room.location_id) == [
            (date(2024, 9, 1), date(2024, 9, 3), reservation.reservation_id)
        ]

    @pytest.mark.unit
    @pytest.mark.domain
    def test_no_overlap_invariant_under_random_bookings(self, room):
        calendar = CalendarIndex()
        accepted = []
        for offset, length in [(0, 3), (2, 2), (3, 1), (5, 4), (4, 1), (9, 2), (1, 1), (8, 1)]:
            arrival = ARRIVAL + timedelta(days=offset)
            departure = arrival + timedelta(days=length)
            if calendar.conflicts(room.location_id, LocationKind.ROOM, arrival, departure) is None:
                reservation = make_reservation(room, arrival=arrival, departure=departure)
                calendar.register(reservation)
                accepted.append((arrival, departure))
        for i, (a1, d1) in enumerate(accepted):
            for a2, d2 in accepted[i + 1:]:
                assert not (a1 < d2 and a2 < d1)


# ============================================================================
# LOYALTY CALCULATIONS
# ============================================================================

class TestLoyaltyCalculations:

    @pytest.mark.unit
    @pytest.mark.domain
    def test_room_points_per_night(self, room):
        assert points_for_reservation(make_reservation(room), LOYALTY) == 20

    @pytest.mark.unit
    @pytest.mark.domain
    def test_table_flat_points(self, table):
        assert points_for_reservation(make_reservation(table, departure=None), LOYALTY) == 5

    @pytest.mark.unit
    @pytest.mark.domain
    def test_order_points_floor(self, table):
        order = Order.create(table, Money(amount=Decimal("25.70")))
        assert points_for_order(order, LOYALTY) == 25

    @pytest.mark.unit
    @pytest.mark.domain
    def test_disabled_config_grants_nothing(self, room, table):
        disabled = LoyaltyConfig(enabled=False, points_per_night_room=10, signup_bonus=50)
        assert points_for_reservation(make_reservation(room), disabled) == 0
        assert points_for_order(Order.create(table, Money(amount=Decimal("40"))), disabled) == 0
        assert signup_bonus(disabled) == 0
        assert signup_bonus(LOYALTY) == 50

    @pytest.mark.unit
    @pytest.mark.domain
    @pytest.mark.edge_case
    def test_unpriced_order_earns_nothing(self, table):
        assert points_for_order(Order.create(table, None), LOYALTY) == 0
