"""Loyalty point calculations"""
import math

from domain.entities import Reservation, Order
from domain.enums import LocationKind
from domain.value_objects import LoyaltyConfig


def points_for_reservation(reservation: Reservation, config: LoyaltyConfig) -> int:
    if not config.enabled:
        return 0
    if reservation.kind == LocationKind.ROOM:
        return reservation.get_nights() * config.points_per_night_room
    return config.points_per_table_booking


def points_for_order(order: Order, config: LoyaltyConfig) -> int:
    if not config.enabled or order.total_amount is None:
        return 0
    return math.floor(order.total_amount * config.points_per_currency_unit_spent)


def signup_bonus(config: LoyaltyConfig) -> int:
    return config.signup_bonus if config.enabled else 0
