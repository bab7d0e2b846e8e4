"""Shared fixtures for the engine test suites"""
import pytest
from decimal import Decimal

from domain.calendar import CalendarIndex
from domain.enums import LocationKind, PricingModel
from domain.value_objects import Location, PricingRule
from application.concurrency import LockRegistry
from application.services import BookingService, OrderService, LoyaltyService
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryOrderRepository
)
from infrastructure.repositories.in_memory_collaborators import (
    InMemoryLocationCatalog, InMemoryClientStore, InMemoryHostSettings
)
from infrastructure.seed import seed_demo_data


# ============================================================================
# LOCATIONS
# ============================================================================

@pytest.fixture
def room():
    """Room at 150 per night for up to 2 people"""
    return Location(
        location_id="room-101", host_id="host-01", kind=LocationKind.ROOM, capacity=2,
        pricing_rule=PricingRule(model=PricingModel.PER_NIGHT, amount=Decimal("150")),
    )


@pytest.fixture
def per_person_room():
    """Room at 50 per person per night"""
    return Location(
        location_id="room-102", host_id="host-01", kind=LocationKind.ROOM, capacity=4,
        pricing_rule=PricingRule(model=PricingModel.PER_NIGHT, amount=Decimal("50"), per_person=True),
    )


@pytest.fixture
def table():
    """Table with a fixed booking fee of 10"""
    return Location(
        location_id="table-5", host_id="host-01", kind=LocationKind.TABLE, capacity=4,
        pricing_rule=PricingRule(model=PricingModel.FIXED_FEE, amount=Decimal("10")),
    )


@pytest.fixture
def unpriced_room():
    return Location(location_id="room-201", host_id="host-02", kind=LocationKind.ROOM)


# ============================================================================
# COLLABORATORS & SERVICES
# ============================================================================

@pytest.fixture
def catalog():
    return InMemoryLocationCatalog()


@pytest.fixture
def clients():
    return InMemoryClientStore()


@pytest.fixture
def host_settings():
    return InMemoryHostSettings()


@pytest.fixture
def seeded(catalog, clients, host_settings):
    seed_demo_data(catalog, clients, host_settings)
    return catalog, clients, host_settings


@pytest.fixture
def reservation_repository():
    return InMemoryReservationRepository()


@pytest.fixture
def order_repository():
    return InMemoryOrderRepository()


@pytest.fixture
def calendar():
    return CalendarIndex()


@pytest.fixture
def locks():
    return LockRegistry()


@pytest.fixture
def loyalty_service(seeded, clients, host_settings):
    return LoyaltyService(clients, host_settings, timeout=1.0)


@pytest.fixture
def booking_service(seeded, reservation_repository, calendar, catalog, clients, loyalty_service, locks):
    return BookingService(
        reservation_repository, calendar, catalog, clients, loyalty_service,
        locks=locks, timeout=1.0
    )


@pytest.fixture
def order_service(seeded, order_repository, catalog, clients, loyalty_service, locks):
    return OrderService(
        order_repository, catalog, clients, loyalty_service, locks=locks, timeout=1.0
    )
