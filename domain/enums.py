"""Domain Enums"""
from enum import Enum


class LocationKind(str, Enum):
    ROOM = "Room"
    TABLE = "Table"


class PricingModel(str, Enum):
    PER_NIGHT = "per_night"
    FIXED_FEE = "fixed_fee"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    CREDIT = "credit"
    POINTS = "points"


class BookingChannel(str, Enum):
    DIRECT = "direct"
    PHONE = "phone"
    WEBSITE = "website"
    WALK_IN = "walk-in"
    OTA = "ota"
