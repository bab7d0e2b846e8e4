from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from uuid import UUID
from datetime import date
from typing import List, Optional

from api.schemas import (
    # Reservation
    CreateReservationRequest, UpdateReservationRequest, TransitionRequest,
    PaymentRequest, PaymentResponse, ReservationResponse,
    # Availability
    AvailabilityResponse, MoneyResponse,
    # Order
    CreateOrderRequest, OrderTransitionRequest, OrderResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, staff_users_db, get_user
from infrastructure.security import verify_password, create_access_token
from infrastructure.config import Settings, get_settings
from infrastructure.logger import setup_logging, get_logger
from infrastructure.seed import seed_demo_data
from domain.auth import User
from domain.calendar import CalendarIndex
from domain.entities import Reservation, Order
from domain.enums import ReservationStatus, OrderStatus, PaymentMethod, LocationKind, BookingChannel
from domain.errors import (
    ReservationEngineError, DoubleBookingError, InvalidDateRangeError, InvalidPartySizeError,
    CapacityExceededError, InvalidAmountError, OverpaymentError, InsufficientCreditError,
    IllegalTransitionError, LocationNotFoundError, ClientNotFoundError,
    ReservationNotFoundError, OrderNotFoundError, CollaboratorTimeoutError
)

from application.concurrency import LockRegistry
from application.services import BookingService, OrderService, LoyaltyService
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryOrderRepository
)
from infrastructure.repositories.in_memory_collaborators import (
    InMemoryLocationCatalog, InMemoryClientStore, InMemoryHostSettings
)

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)


class Engine:
    """Wires repositories, collaborators and services together"""

    def __init__(self, settings: Settings):
        self.locks = LockRegistry()
        self.calendar = CalendarIndex()
        self.reservation_repo = InMemoryReservationRepository()
        self.order_repo = InMemoryOrderRepository()
        self.catalog = InMemoryLocationCatalog()
        self.clients = InMemoryClientStore()
        self.host_settings = InMemoryHostSettings()
        if settings.seed_demo_data:
            seed_demo_data(self.catalog, self.clients, self.host_settings)

        timeout = settings.collaborator_timeout_seconds
        self.loyalty = LoyaltyService(self.clients, self.host_settings, timeout)
        self.booking_service = BookingService(
            self.reservation_repo, self.calendar, self.catalog, self.clients, self.loyalty,
            locks=self.locks, timeout=timeout, tolerance=settings.payment_tolerance
        )
        self.order_service = OrderService(
            self.order_repo, self.catalog, self.clients, self.loyalty,
            locks=self.locks, timeout=timeout, tolerance=settings.payment_tolerance
        )


engine = Engine(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await engine.booking_service.rebuild_calendar()
    logger.info("engine_started", title=settings.app_title)
    yield


app = FastAPI(
    title=settings.app_title,
    description="Booking, billing and loyalty engine for hospitality hosts",
    version=settings.app_version,
    lifespan=lifespan
)

# Dependency injection
def get_engine() -> Engine:
    return engine

def get_booking_service(engine: Engine = Depends(get_engine)) -> BookingService:
    return engine.booking_service

def get_order_service(engine: Engine = Depends(get_engine)) -> OrderService:
    return engine.order_service

def get_loyalty_service(engine: Engine = Depends(get_engine)) -> LoyaltyService:
    return engine.loyalty

# ============================================================================
# ERROR HANDLING
# ============================================================================

ERROR_STATUS_CODES = {
    DoubleBookingError: 409,
    IllegalTransitionError: 409,
    InvalidDateRangeError: 400,
    InvalidPartySizeError: 400,
    CapacityExceededError: 400,
    InvalidAmountError: 400,
    OverpaymentError: 400,
    InsufficientCreditError: 402,
    LocationNotFoundError: 404,
    ClientNotFoundError: 404,
    ReservationNotFoundError: 404,
    OrderNotFoundError: 404,
    CollaboratorTimeoutError: 504,
}


@app.exception_handler(ReservationEngineError)
async def engine_error_handler(request: Request, exc: ReservationEngineError):
    status_code = 400
    for kind, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, kind):
            status_code = code
            break
    logger.info("request_rejected", path=request.url.path, error=exc.code, detail=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/order-status", tags=["Enum Reference"])
async def get_order_statuses():
    """Get all OrderStatus enum values"""
    return {"values": [item.value for item in OrderStatus]}

@app.get("/api/enums/payment-method", tags=["Enum Reference"])
async def get_payment_methods():
    """Get all PaymentMethod enum values"""
    return {"values": [item.value for item in PaymentMethod]}

@app.get("/api/enums/location-kind", tags=["Enum Reference"])
async def get_location_kinds():
    """Get all LocationKind enum values"""
    return {"values": [item.value for item in LocationKind]}

@app.get("/api/enums/booking-channel", tags=["Enum Reference"])
async def get_booking_channels():
    """Get all BookingChannel enum values"""
    return {"values": [item.value for item in BookingChannel]}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(staff_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Book a room or table"""
    reservation = await service.create_reservation(
        location_id=request.location_id,
        arrival=request.arrival,
        departure=request.departure,
        party_size=request.party_size,
        client_id=request.client_id,
        client_name=request.client_name,
        host_id=current_user.host_id,
        channel=request.channel,
        notes=request.notes,
        has_pets=request.has_pets
    )
    return _reservation_to_response(reservation)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    location_id: Optional[str] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """List the host's reservations, optionally for one location and month"""
    reservations = await service.list_reservations(
        current_user.host_id, location_id=location_id, month=month, year=year
    )
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/code/{confirmation_code}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation_by_code(
    confirmation_code: str,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by confirmation code"""
    reservation = await service.get_reservation_by_confirmation_code(confirmation_code)
    _ensure_owned(reservation.host_id, current_user, ReservationNotFoundError(confirmation_code))
    return _reservation_to_response(reservation)

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await _owned_reservation(service, reservation_id, current_user)
    return _reservation_to_response(reservation)

@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Change dates, location, party size or booking details"""
    await _owned_reservation(service, reservation_id, current_user)
    reservation = await service.update_reservation(
        reservation_id,
        location_id=request.location_id,
        arrival=request.arrival,
        departure=request.departure,
        party_size=request.party_size,
        client_id=request.client_id,
        client_name=request.client_name,
        channel=request.channel,
        notes=request.notes,
        has_pets=request.has_pets
    )
    return _reservation_to_response(reservation)

@app.delete("/api/reservations/{reservation_id}", tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Delete a reservation and free its dates"""
    await _owned_reservation(service, reservation_id, current_user)
    deleted = await service.delete_reservation(reservation_id)
    return {"deleted": deleted}

@app.post("/api/reservations/{reservation_id}/payments", response_model=ReservationResponse, tags=["Reservations"])
async def apply_payment(
    reservation_id: UUID,
    request: PaymentRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Record a payment against the reservation balance"""
    await _owned_reservation(service, reservation_id, current_user)
    reservation = await service.apply_payment(
        reservation_id, request.method, request.amount, request.note
    )
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/status", response_model=ReservationResponse, tags=["Reservations"])
async def transition_status(
    reservation_id: UUID,
    request: TransitionRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Move a reservation to a new lifecycle status"""
    await _owned_reservation(service, reservation_id, current_user)
    reservation = await service.transition_status(
        reservation_id, request.status, checkout_notes=request.checkout_notes
    )
    return _reservation_to_response(reservation)

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/availability/{location_id}", response_model=AvailabilityResponse, tags=["Availability"])
async def query_availability(
    location_id: str,
    arrival: date,
    departure: Optional[date] = None,
    party_size: int = Query(1, ge=1),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check whether a location is free for a date range and quote its price"""
    availability = await service.query_availability(
        location_id, arrival, departure, party_size, host_id=current_user.host_id
    )
    quoted = availability.quoted_price
    return AvailabilityResponse(
        location_id=availability.location_id,
        kind=availability.kind,
        arrival=availability.arrival,
        departure=availability.departure,
        available=availability.available,
        conflicting_reservation_id=availability.conflicting_reservation_id,
        quoted_price=MoneyResponse(amount=quoted.amount, currency=quoted.currency) if quoted else None
    )

# ============================================================================
# ORDER ENDPOINTS
# ============================================================================

@app.post("/api/orders", response_model=OrderResponse, status_code=201, tags=["Orders"])
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Place a service order for a location"""
    order = await service.create_order(
        location_id=request.location_id,
        total_amount=request.total_amount,
        service_id=request.service_id,
        client_id=request.client_id,
        client_name=request.client_name,
        host_id=current_user.host_id,
        notes=request.notes
    )
    return _order_to_response(order)

@app.get("/api/orders", response_model=List[OrderResponse], tags=["Orders"])
async def list_orders(
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """List the host's orders"""
    orders = await service.list_orders(current_user.host_id)
    return [_order_to_response(o) for o in orders]

@app.get("/api/orders/{order_id}", response_model=OrderResponse, tags=["Orders"])
async def get_order(
    order_id: UUID,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get order by ID"""
    order = await _owned_order(service, order_id, current_user)
    return _order_to_response(order)

@app.post("/api/orders/{order_id}/payments", response_model=OrderResponse, tags=["Orders"])
async def apply_order_payment(
    order_id: UUID,
    request: PaymentRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Record a payment against the order balance"""
    await _owned_order(service, order_id, current_user)
    order = await service.apply_order_payment(order_id, request.method, request.amount, request.note)
    return _order_to_response(order)

@app.post("/api/orders/{order_id}/status", response_model=OrderResponse, tags=["Orders"])
async def transition_order_status(
    order_id: UUID,
    request: OrderTransitionRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Move an order to a new status"""
    await _owned_order(service, order_id, current_user)
    order = await service.transition_order_status(order_id, request.status)
    return _order_to_response(order)

# ============================================================================
# LOYALTY ENDPOINTS
# ============================================================================

@app.post("/api/clients/{client_id}/signup-bonus", tags=["Loyalty"])
async def grant_signup_bonus(
    client_id: str,
    service: LoyaltyService = Depends(get_loyalty_service),
    current_user: User = Depends(get_current_active_user)
):
    """Credit the host's signup bonus to a newly registered client"""
    points = await service.grant_signup_bonus(current_user.host_id, client_id)
    return {"client_id": client_id, "points_granted": points}

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _ensure_owned(host_id: str, user: User, not_found: ReservationEngineError) -> None:
    """Hide other hosts' records behind a not-found error"""
    if host_id != user.host_id:
        raise not_found

async def _owned_reservation(service: BookingService, reservation_id: UUID, user: User) -> Reservation:
    reservation = await service.get_reservation(reservation_id)
    _ensure_owned(reservation.host_id, user, ReservationNotFoundError(reservation_id))
    return reservation

async def _owned_order(service: OrderService, order_id: UUID, user: User) -> Order:
    order = await service.get_order(order_id)
    _ensure_owned(order.host_id, user, OrderNotFoundError(order_id))
    return order

def _payments_to_response(ledger) -> List[PaymentResponse]:
    return [
        PaymentResponse(method=p.method.value, amount=p.amount, paid_at=p.paid_at, note=p.note)
        for p in ledger.payments
    ]

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        confirmation_code=reservation.confirmation_code,
        host_id=reservation.host_id,
        location_id=reservation.location_id,
        kind=reservation.kind.value,
        client_id=reservation.client_id,
        client_name=reservation.client_name,
        arrival=reservation.stay.arrival,
        departure=reservation.stay.departure,
        nights=reservation.get_nights(),
        party_size=reservation.party_size,
        status=reservation.status.value,
        channel=reservation.channel.value,
        total_amount=reservation.total_amount,
        amount_paid=reservation.amount_paid,
        balance_due=reservation.balance_due,
        currency=reservation.currency,
        payments=_payments_to_response(reservation),
        points_granted=reservation.points_granted,
        notes=reservation.notes,
        has_pets=reservation.has_pets,
        checkout_notes=reservation.checkout_notes,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _order_to_response(order: Order) -> OrderResponse:
    """Convert Order entity to OrderResponse"""
    return OrderResponse(
        order_id=order.order_id,
        host_id=order.host_id,
        location_id=order.location_id,
        service_id=order.service_id,
        client_id=order.client_id,
        client_name=order.client_name,
        status=order.status.value,
        total_amount=order.total_amount,
        amount_paid=order.amount_paid,
        balance_due=order.balance_due,
        currency=order.currency,
        payments=_payments_to_response(order),
        points_granted=order.points_granted,
        notes=order.notes,
        created_at=order.created_at,
        modified_at=order.modified_at,
        version=order.version
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
