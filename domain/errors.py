"""Domain Errors

Every business failure the engine can report is one of these kinds. The HTTP
layer turns them into typed error responses, keyed by ``code``.
"""
from decimal import Decimal
from typing import Optional


class ReservationEngineError(Exception):
    """Base class for all expected business failures"""

    code = "reservation_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class DoubleBookingError(ReservationEngineError):
    code = "double_booking"

    def __init__(self, location_id: str, conflicting_reservation_id):
        super().__init__(
            f"Location {location_id} is already booked by reservation {conflicting_reservation_id}"
        )
        self.location_id = location_id
        self.conflicting_reservation_id = conflicting_reservation_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicting_reservation_id"] = str(self.conflicting_reservation_id)
        return data


class InvalidDateRangeError(ReservationEngineError):
    code = "invalid_date_range"


class CapacityExceededError(ReservationEngineError):
    code = "capacity_exceeded"

    def __init__(self, party_size: int, capacity: int):
        super().__init__(f"Party of {party_size} exceeds location capacity of {capacity}")
        self.party_size = party_size
        self.capacity = capacity


class InvalidPartySizeError(ReservationEngineError):
    code = "invalid_party_size"


class InvalidAmountError(ReservationEngineError):
    code = "invalid_amount"


class OverpaymentError(ReservationEngineError):
    code = "overpayment"

    def __init__(self, requested: Decimal, balance_due: Decimal):
        super().__init__(
            f"Payment of {requested} exceeds the remaining balance of {balance_due}"
        )
        self.requested = requested
        self.balance_due = balance_due


class InsufficientCreditError(ReservationEngineError):
    code = "insufficient_credit"

    def __init__(self, client_id: str, available: Decimal, requested: Decimal):
        super().__init__(
            f"Client {client_id} has {available} credit available, {requested} requested"
        )
        self.client_id = client_id
        self.available = available
        self.requested = requested


class IllegalTransitionError(ReservationEngineError):
    code = "illegal_transition"

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot move from {current} to {requested}")
        self.current = current
        self.requested = requested


class LocationNotFoundError(ReservationEngineError):
    code = "location_not_found"

    def __init__(self, location_id: str):
        super().__init__(f"Location {location_id} not found")
        self.location_id = location_id


class ClientNotFoundError(ReservationEngineError):
    code = "client_not_found"

    def __init__(self, client_id: str):
        super().__init__(f"Client {client_id} not found")
        self.client_id = client_id


class ReservationNotFoundError(ReservationEngineError):
    code = "reservation_not_found"

    def __init__(self, reservation_id):
        super().__init__(f"Reservation {reservation_id} not found")
        self.reservation_id = reservation_id


class OrderNotFoundError(ReservationEngineError):
    code = "order_not_found"

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class CollaboratorTimeoutError(ReservationEngineError):
    code = "collaborator_timeout"

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} did not answer within {timeout}s")
        self.operation = operation
        self.timeout = timeout
