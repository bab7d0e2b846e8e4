"""Demo data for the in-memory collaborators"""
from decimal import Decimal

from domain.enums import LocationKind, PricingModel
from domain.value_objects import Location, PricingRule, LoyaltyConfig
from infrastructure.repositories.in_memory_collaborators import (
    ClientAccount, InMemoryLocationCatalog, InMemoryClientStore, InMemoryHostSettings
)


def seed_demo_data(
    catalog: InMemoryLocationCatalog,
    clients: InMemoryClientStore,
    host_settings: InMemoryHostSettings
) -> None:
    catalog.add(Location(
        location_id="room-101", host_id="host-01", name="Chambre 101",
        kind=LocationKind.ROOM, capacity=2,
        pricing_rule=PricingRule(model=PricingModel.PER_NIGHT, amount=Decimal("150")),
    ))
    catalog.add(Location(
        location_id="room-102", host_id="host-01", name="Suite 102",
        kind=LocationKind.ROOM, capacity=4,
        pricing_rule=PricingRule(model=PricingModel.PER_NIGHT, amount=Decimal("50"), per_person=True),
    ))
    catalog.add(Location(
        location_id="table-5", host_id="host-01", name="Table 5",
        kind=LocationKind.TABLE, capacity=4,
        pricing_rule=PricingRule(model=PricingModel.FIXED_FEE, amount=Decimal("10")),
    ))
    catalog.add(Location(
        location_id="room-201", host_id="host-02", name="Garden Room",
        kind=LocationKind.ROOM,
    ))

    clients.add(ClientAccount(
        client_id="client-1", host_id="host-01", name="Alice Wonderland",
        email="client1@example.com", credit=Decimal("50"),
    ))
    clients.add(ClientAccount(
        client_id="client-2", host_id="host-01", name="Bob The Builder",
        email="client2@example.com", credit=Decimal("0"),
    ))
    clients.add(ClientAccount(
        client_id="client-3", host_id="host-02", name="Charlie Passager",
        credit=Decimal("10"),
    ))

    host_settings.set_loyalty_config("host-01", LoyaltyConfig(
        enabled=True,
        points_per_night_room=10,
        points_per_table_booking=5,
        points_per_currency_unit_spent=Decimal("1"),
        signup_bonus=50,
    ))
    host_settings.set_loyalty_config("host-02", LoyaltyConfig(enabled=False))
