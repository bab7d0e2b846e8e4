"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import (
    LocationKind, ReservationStatus, OrderStatus, PaymentMethod, BookingChannel
)


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    location_id: str
    arrival: date
    departure: Optional[date] = None
    party_size: int = Field(ge=1)
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    channel: BookingChannel = BookingChannel.DIRECT
    notes: Optional[str] = None
    has_pets: Optional[bool] = None


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    location_id: Optional[str] = None
    arrival: Optional[date] = None
    departure: Optional[date] = None
    party_size: Optional[int] = Field(None, ge=1)
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    channel: Optional[BookingChannel] = None
    notes: Optional[str] = None
    has_pets: Optional[bool] = None


class TransitionRequest(BaseModel):
    """Reservation status change request DTO"""
    status: ReservationStatus
    checkout_notes: Optional[str] = None


class PaymentRequest(BaseModel):
    """Payment request DTO; amount is checked by the ledger"""
    method: PaymentMethod
    amount: Decimal
    note: Optional[str] = None


class PaymentResponse(BaseModel):
    """Payment entry response DTO"""
    method: str
    amount: Decimal
    paid_at: datetime
    note: Optional[str] = None


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    confirmation_code: str
    host_id: str
    location_id: str
    kind: str
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    arrival: date
    departure: Optional[date] = None
    nights: int
    party_size: int
    status: str
    channel: str
    total_amount: Optional[Decimal] = None
    amount_paid: Decimal
    balance_due: Decimal
    currency: str
    payments: List[PaymentResponse]
    points_granted: int
    notes: Optional[str] = None
    has_pets: Optional[bool] = None
    checkout_notes: Optional[str] = None
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class MoneyResponse(BaseModel):
    """Money response DTO"""
    amount: Decimal
    currency: str


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    location_id: str
    kind: LocationKind
    arrival: date
    departure: Optional[date] = None
    available: bool
    conflicting_reservation_id: Optional[UUID] = None
    quoted_price: Optional[MoneyResponse] = None


# ============================================================================
# ORDER SCHEMAS
# ============================================================================

class CreateOrderRequest(BaseModel):
    """Create order request DTO"""
    location_id: str
    total_amount: Optional[Decimal] = Field(None, ge=0)
    service_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None


class OrderTransitionRequest(BaseModel):
    """Order status change request DTO"""
    status: OrderStatus


class OrderResponse(BaseModel):
    """Order response DTO"""
    order_id: UUID
    host_id: str
    location_id: str
    service_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    status: str
    total_amount: Optional[Decimal] = None
    amount_paid: Decimal
    balance_due: Decimal
    currency: str
    payments: List[PaymentResponse]
    points_granted: int
    notes: Optional[str] = None
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    host_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
