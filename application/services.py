"""Application Services - Business use cases"""
from uuid import UUID
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, TypeVar, Union

from pydantic import BaseModel

from application.concurrency import LockRegistry, bounded, location_keys
from domain.calendar import CalendarIndex
from domain.entities import Reservation, Order, PaymentLedger
from domain.enums import (
    LocationKind, ReservationStatus, OrderStatus, PaymentMethod, BookingChannel
)
from domain.errors import (
    DoubleBookingError, InvalidDateRangeError, InsufficientCreditError,
    ClientNotFoundError, LocationNotFoundError, ReservationNotFoundError,
    OrderNotFoundError, ReservationEngineError
)
from domain.loyalty import points_for_reservation, points_for_order, signup_bonus
from domain.pricing import price
from domain.repositories import (
    ReservationRepository, OrderRepository, LocationCatalog, ClientStore, HostSettings
)
from domain.value_objects import EPSILON, Location, Money, StayDates
from infrastructure.logger import get_logger

logger = get_logger(__name__)

L = TypeVar("L", bound=PaymentLedger)


class Availability(BaseModel):
    """Answer to an availability query"""
    location_id: str
    kind: LocationKind
    arrival: date
    departure: Optional[date] = None
    available: bool
    conflicting_reservation_id: Optional[UUID] = None
    quoted_price: Optional[Money] = None


class LoyaltyService:
    """Grants loyalty points through the client context"""

    def __init__(self, clients: ClientStore, host_settings: HostSettings, timeout: float = 5.0):
        self.clients = clients
        self.host_settings = host_settings
        self.timeout = timeout

    async def accrue_reservation(self, reservation: Reservation) -> int:
        """Grant the points a checked-out reservation earns"""
        config = await bounded(
            self.host_settings.get_loyalty_config(reservation.host_id),
            "get_loyalty_config", self.timeout
        )
        return await self._grant(reservation, points_for_reservation(reservation, config))

    async def accrue_order(self, order: Order) -> int:
        """Grant the points a completed order earns"""
        config = await bounded(
            self.host_settings.get_loyalty_config(order.host_id),
            "get_loyalty_config", self.timeout
        )
        return await self._grant(order, points_for_order(order, config))

    async def revoke(self, entity: Union[Reservation, Order], points: int) -> None:
        """Take back points granted for an operation that did not commit"""
        if points <= 0:
            return
        client_id = await self._resolve(entity)
        if client_id is not None:
            await bounded(
                self.clients.adjust_client_points(client_id, -points),
                "adjust_client_points", self.timeout
            )
            logger.warning("loyalty_revoked", client_id=client_id, points=points)

    async def grant_signup_bonus(self, host_id: str, client_id: str) -> int:
        # Fails with ClientNotFoundError for unknown profiles
        await bounded(self.clients.get_client_credit(client_id), "get_client_credit", self.timeout)
        config = await bounded(
            self.host_settings.get_loyalty_config(host_id), "get_loyalty_config", self.timeout
        )
        points = signup_bonus(config)
        if points > 0:
            await bounded(
                self.clients.adjust_client_points(client_id, points),
                "adjust_client_points", self.timeout
            )
            logger.info("signup_bonus_granted", host_id=host_id, client_id=client_id, points=points)
        return points

    async def _resolve(self, entity: Union[Reservation, Order]) -> Optional[str]:
        return await bounded(
            self.clients.resolve_client_for_reservation(entity),
            "resolve_client_for_reservation", self.timeout
        )

    async def _grant(self, entity: Union[Reservation, Order], points: int) -> int:
        if points <= 0:
            return 0
        client_id = await self._resolve(entity)
        if client_id is None:
            logger.info("loyalty_skipped_guest", host_id=entity.host_id, points=points)
            return 0
        await bounded(
            self.clients.adjust_client_points(client_id, points),
            "adjust_client_points", self.timeout
        )
        logger.info("loyalty_granted", client_id=client_id, points=points)
        return points


class PaymentProcessor:
    """Applies payments to any ledger, debiting client credit when asked to"""

    def __init__(
        self,
        clients: ClientStore,
        locks: LockRegistry,
        timeout: float = 5.0,
        tolerance: Decimal = EPSILON
    ):
        self.clients = clients
        self.locks = locks
        self.timeout = timeout
        self.tolerance = tolerance

    async def apply(
        self,
        entity: L,
        method: PaymentMethod,
        amount,
        note: Optional[str],
        commit: Callable[[L], Awaitable[L]]
    ) -> L:
        method = PaymentMethod(method)
        updated = entity.model_copy(deep=True)
        amount = updated.check_payment(amount, self.tolerance)

        if method != PaymentMethod.CREDIT:
            updated.apply_payment(method, amount, note, self.tolerance)
            return await commit(updated)

        client_id = await bounded(
            self.clients.resolve_client_for_reservation(updated),
            "resolve_client_for_reservation", self.timeout
        )
        if client_id is None:
            raise ClientNotFoundError(updated.client_id or updated.client_name or "guest")

        async with self.locks.hold(("client", client_id)):
            available = await bounded(
                self.clients.get_client_credit(client_id), "get_client_credit", self.timeout
            )
            if available < amount:
                raise InsufficientCreditError(client_id, available=available, requested=amount)
            updated.apply_payment(method, amount, note, self.tolerance)
            await bounded(
                self.clients.adjust_client_credit(client_id, -amount),
                "adjust_client_credit", self.timeout
            )
            try:
                return await commit(updated)
            except Exception:
                await self.clients.adjust_client_credit(client_id, amount)
                logger.error("credit_debit_reverted", client_id=client_id, amount=str(amount))
                raise


class BookingService:
    """Service for Reservation business use cases"""

    def __init__(
        self,
        repository: ReservationRepository,
        calendar: CalendarIndex,
        catalog: LocationCatalog,
        clients: ClientStore,
        loyalty: LoyaltyService,
        locks: Optional[LockRegistry] = None,
        timeout: float = 5.0,
        tolerance: Decimal = EPSILON
    ):
        self.repository = repository
        self.calendar = calendar
        self.catalog = catalog
        self.clients = clients
        self.loyalty = loyalty
        self.locks = locks if locks is not None else LockRegistry()
        self.timeout = timeout
        self.payments = PaymentProcessor(clients, self.locks, timeout, tolerance)

    async def rebuild_calendar(self) -> None:
        """Re-derive the calendar from stored reservations"""
        reservations = await self.repository.find_all()
        self.calendar.rebuild(reservations)
        logger.info("calendar_rebuilt", reservations=len(reservations))

    # ==================== BOOKING ====================
    async def create_reservation(
        self,
        location_id: str,
        arrival: date,
        departure: Optional[date],
        party_size: int,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        host_id: Optional[str] = None,
        channel: BookingChannel = BookingChannel.DIRECT,
        notes: Optional[str] = None,
        has_pets: Optional[bool] = None
    ) -> Reservation:
        """Book a location for a date range"""
        location = await self._get_location(location_id, host_id)
        if client_id:
            await self._ensure_client(client_id)

        total = price(location, arrival, departure, party_size)
        reservation = Reservation.create(
            location=location,
            stay=StayDates(arrival=arrival, departure=departure),
            party_size=party_size,
            total_amount=total,
            client_id=client_id,
            client_name=client_name,
            channel=channel,
            notes=notes,
            has_pets=has_pets
        )

        async with self.locks.hold(*location_keys(location_id)):
            self._ensure_free(reservation)
            await self._ensure_unique_code(reservation)
            saved = await self.repository.save(reservation)
            self.calendar.register(saved)

        logger.info(
            "reservation_created",
            reservation_id=str(saved.reservation_id),
            location_id=location_id,
            arrival=str(saved.stay.arrival),
            departure=str(saved.stay.departure),
            total=str(saved.total_amount),
        )
        return saved

    async def update_reservation(
        self,
        reservation_id: UUID,
        location_id: Optional[str] = None,
        arrival: Optional[date] = None,
        departure: Optional[date] = None,
        party_size: Optional[int] = None,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        channel: Optional[BookingChannel] = None,
        notes: Optional[str] = None,
        has_pets: Optional[bool] = None
    ) -> Reservation:
        """Change a reservation, re-checking the calendar and price when it moves"""
        async with self.locks.hold(("reservation", reservation_id)):
            current = await self._load(reservation_id)
            updated = current.model_copy(deep=True)

            if client_id is not None:
                await self._ensure_client(client_id)
                updated.client_id = client_id
            if client_name is not None:
                updated.client_name = client_name
            if channel is not None:
                updated.channel = channel
            if notes is not None:
                updated.notes = notes
            if has_pets is not None and updated.kind == LocationKind.ROOM:
                updated.has_pets = has_pets

            new_location_id = location_id or current.location_id
            moves = (
                new_location_id != current.location_id
                or (arrival is not None and arrival != current.stay.arrival)
                or (departure is not None and departure != current.stay.departure)
                or (party_size is not None and party_size != current.party_size)
            )
            if not moves:
                updated.touch()
                return await self.repository.update(updated)

            location = await self._get_location(new_location_id, current.host_id)
            new_arrival = arrival if arrival is not None else current.stay.arrival
            if location.kind == LocationKind.TABLE:
                new_departure = departure
            else:
                new_departure = departure if departure is not None else current.stay.departure
            new_party = party_size if party_size is not None else current.party_size

            async with self.locks.hold(*location_keys(current.location_id, new_location_id)):
                updated.reschedule(
                    location=location,
                    stay=StayDates(arrival=new_arrival, departure=new_departure),
                    party_size=new_party,
                    total_amount=price(location, new_arrival, new_departure, new_party)
                )
                if updated.is_active():
                    self._ensure_free(updated)
                saved = await self.repository.update(updated)
                self.calendar.register(saved)

        logger.info(
            "reservation_rescheduled",
            reservation_id=str(reservation_id),
            location_id=saved.location_id,
            arrival=str(saved.stay.arrival),
            departure=str(saved.stay.departure),
            total=str(saved.total_amount),
        )
        return saved

    async def query_availability(
        self,
        location_id: str,
        arrival: date,
        departure: Optional[date] = None,
        party_size: int = 1,
        host_id: Optional[str] = None
    ) -> Availability:
        """Check whether a location is free and quote its price"""
        location = await self._get_location(location_id, host_id)
        if location.kind == LocationKind.ROOM and (departure is None or departure <= arrival):
            raise InvalidDateRangeError("Departure must be after arrival")
        if location.kind == LocationKind.TABLE:
            departure = None

        async with self.locks.hold(*location_keys(location_id)):
            clash = self.calendar.conflicts(location_id, location.kind, arrival, departure)

        return Availability(
            location_id=location_id,
            kind=location.kind,
            arrival=arrival,
            departure=departure,
            available=clash is None,
            conflicting_reservation_id=clash,
            quoted_price=price(location, arrival, departure, party_size)
        )

    # ==================== LEDGER ====================
    async def apply_payment(
        self,
        reservation_id: UUID,
        method: PaymentMethod,
        amount,
        note: Optional[str] = None
    ) -> Reservation:
        """Record a payment against the balance due"""
        async with self.locks.hold(("reservation", reservation_id)):
            reservation = await self._load(reservation_id)
            try:
                saved = await self.payments.apply(
                    reservation, method, amount, note, self.repository.update
                )
            except ReservationEngineError as e:
                logger.warning(
                    "payment_rejected", reservation_id=str(reservation_id),
                    method=str(method), amount=str(amount), error=e.code
                )
                raise

        logger.info(
            "payment_applied",
            reservation_id=str(reservation_id),
            method=PaymentMethod(method).value,
            amount=str(amount),
            balance_due=str(saved.balance_due),
        )
        return saved

    async def transition_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
        checkout_notes: Optional[str] = None
    ) -> Reservation:
        """Advance a reservation through its lifecycle"""
        async with self.locks.hold(("reservation", reservation_id)):
            current = await self._load(reservation_id)
            updated = current.model_copy(deep=True)
            previous = current.status

            if not updated.transition_to(new_status):
                return current

            if updated.status == ReservationStatus.CHECKED_OUT and checkout_notes:
                updated.checkout_notes = checkout_notes

            granted = 0
            if updated.status == ReservationStatus.CHECKED_OUT and not updated.loyalty_accrued:
                granted = await self.loyalty.accrue_reservation(updated)
                updated.record_loyalty_grant(granted)

            try:
                if updated.status == ReservationStatus.CANCELLED:
                    async with self.locks.hold(*location_keys(updated.location_id)):
                        saved = await self.repository.update(updated)
                        self.calendar.release(reservation_id)
                else:
                    saved = await self.repository.update(updated)
            except Exception:
                await self.loyalty.revoke(updated, granted)
                raise

        logger.info(
            "reservation_status_changed",
            reservation_id=str(reservation_id),
            previous=previous.value,
            status=saved.status.value,
            points_granted=granted,
        )
        return saved

    async def delete_reservation(self, reservation_id: UUID) -> bool:
        """Remove a reservation and free its dates"""
        async with self.locks.hold(("reservation", reservation_id)):
            reservation = await self._load(reservation_id)
            async with self.locks.hold(*location_keys(reservation.location_id)):
                deleted = await self.repository.delete(reservation_id)
                self.calendar.release(reservation_id)
        logger.info("reservation_deleted", reservation_id=str(reservation_id))
        return deleted

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        return await self._load(reservation_id)

    async def get_reservation_by_confirmation_code(self, code: str) -> Reservation:
        reservation = await self.repository.find_by_confirmation_code(code)
        if not reservation:
            raise ReservationNotFoundError(code)
        return reservation

    async def list_reservations(
        self,
        host_id: str,
        location_id: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None
    ) -> List[Reservation]:
        """List a host's reservations, optionally those touching one month"""
        reservations = await self.repository.find_by_host(host_id, location_id)
        if month is not None and year is not None:
            reservations = [r for r in reservations if r.stay.overlaps_month(year, month)]
        return reservations

    # ==================== HELPERS ====================
    async def _load(self, reservation_id: UUID) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    async def _get_location(self, location_id: str, host_id: Optional[str] = None) -> Location:
        location = await bounded(self.catalog.get_location(location_id), "get_location", self.timeout)
        if host_id is not None and location.host_id != host_id:
            raise LocationNotFoundError(location_id)
        return location

    async def _ensure_client(self, client_id: str) -> None:
        # The credit lookup doubles as an existence check
        await bounded(self.clients.get_client_credit(client_id), "get_client_credit", self.timeout)

    async def _ensure_unique_code(self, reservation: Reservation) -> None:
        while await self.repository.find_by_confirmation_code(reservation.confirmation_code):
            reservation.confirmation_code = Reservation.generate_confirmation_code()

    def _ensure_free(self, reservation: Reservation) -> None:
        clash = self.calendar.conflicts(
            reservation.location_id,
            reservation.kind,
            reservation.stay.arrival,
            reservation.stay.departure,
            exclude_reservation_id=reservation.reservation_id
        )
        if clash is not None:
            logger.warning(
                "double_booking_rejected",
                location_id=reservation.location_id,
                arrival=str(reservation.stay.arrival),
                conflicting_reservation_id=str(clash),
            )
            raise DoubleBookingError(reservation.location_id, clash)


class OrderService:
    """Service for Order business use cases"""

    def __init__(
        self,
        repository: OrderRepository,
        catalog: LocationCatalog,
        clients: ClientStore,
        loyalty: LoyaltyService,
        locks: Optional[LockRegistry] = None,
        timeout: float = 5.0,
        tolerance: Decimal = EPSILON
    ):
        self.repository = repository
        self.catalog = catalog
        self.clients = clients
        self.loyalty = loyalty
        self.locks = locks if locks is not None else LockRegistry()
        self.timeout = timeout
        self.payments = PaymentProcessor(clients, self.locks, timeout, tolerance)

    async def create_order(
        self,
        location_id: str,
        total_amount: Optional[Decimal],
        service_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        host_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Order:
        location = await bounded(self.catalog.get_location(location_id), "get_location", self.timeout)
        if host_id is not None and location.host_id != host_id:
            raise LocationNotFoundError(location_id)
        if client_id:
            await bounded(self.clients.get_client_credit(client_id), "get_client_credit", self.timeout)

        total = None
        if total_amount is not None:
            total = Money(amount=Decimal(str(total_amount)), currency=location.currency)
        order = Order.create(
            location=location,
            total_amount=total,
            service_id=service_id,
            client_id=client_id,
            client_name=client_name,
            notes=notes
        )
        saved = await self.repository.save(order)
        logger.info("order_created", order_id=str(saved.order_id), location_id=location_id,
                    total=str(saved.total_amount))
        return saved

    async def apply_order_payment(
        self,
        order_id: UUID,
        method: PaymentMethod,
        amount,
        note: Optional[str] = None
    ) -> Order:
        async with self.locks.hold(("order", order_id)):
            order = await self._load(order_id)
            saved = await self.payments.apply(order, method, amount, note, self.repository.update)
        logger.info("order_payment_applied", order_id=str(order_id), amount=str(amount),
                    balance_due=str(saved.balance_due))
        return saved

    async def transition_order_status(self, order_id: UUID, new_status: OrderStatus) -> Order:
        async with self.locks.hold(("order", order_id)):
            current = await self._load(order_id)
            updated = current.model_copy(deep=True)
            if not updated.transition_to(new_status):
                return current

            granted = 0
            if updated.status == OrderStatus.COMPLETED and not updated.loyalty_accrued:
                granted = await self.loyalty.accrue_order(updated)
                updated.record_loyalty_grant(granted)
            try:
                saved = await self.repository.update(updated)
            except Exception:
                await self.loyalty.revoke(updated, granted)
                raise

        logger.info("order_status_changed", order_id=str(order_id), status=saved.status.value,
                    points_granted=granted)
        return saved

    async def get_order(self, order_id: UUID) -> Order:
        return await self._load(order_id)

    async def list_orders(self, host_id: str) -> List[Order]:
        return await self.repository.find_by_host(host_id)

    async def _load(self, order_id: UUID) -> Order:
        order = await self.repository.find_by_id(order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        return order
