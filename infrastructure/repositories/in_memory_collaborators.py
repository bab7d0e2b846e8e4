"""In-Memory stand-ins for the catalog, client and host-settings contexts"""
from decimal import Decimal
from typing import Dict, Optional, Union

from pydantic import BaseModel

from domain.entities import Reservation, Order
from domain.errors import LocationNotFoundError, ClientNotFoundError
from domain.repositories import LocationCatalog, ClientStore, HostSettings
from domain.value_objects import Location, LoyaltyConfig


class ClientAccount(BaseModel):
    """Balances the client context keeps for a profile"""
    client_id: str
    host_id: str
    name: str
    email: Optional[str] = None
    credit: Decimal = Decimal("0")
    points: int = 0


class InMemoryLocationCatalog(LocationCatalog):

    def __init__(self):
        self._locations: Dict[str, Location] = {}

    def add(self, location: Location) -> Location:
        self._locations[location.location_id] = location
        return location

    async def get_location(self, location_id: str) -> Location:
        location = self._locations.get(location_id)
        if location is None:
            raise LocationNotFoundError(location_id)
        return location


class InMemoryClientStore(ClientStore):

    def __init__(self):
        self._clients: Dict[str, ClientAccount] = {}

    def add(self, client: ClientAccount) -> ClientAccount:
        self._clients[client.client_id] = client
        return client

    def get(self, client_id: str) -> ClientAccount:
        client = self._clients.get(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    async def get_client_credit(self, client_id: str) -> Decimal:
        return self.get(client_id).credit

    async def adjust_client_credit(self, client_id: str, delta: Decimal) -> Decimal:
        client = self.get(client_id)
        new_credit = client.credit + Decimal(str(delta))
        if new_credit < 0:
            raise ValueError(f"Credit of client {client_id} cannot go below zero")
        client.credit = new_credit
        return client.credit

    async def adjust_client_points(self, client_id: str, delta: int) -> int:
        client = self.get(client_id)
        client.points += delta
        return client.points

    async def resolve_client_for_reservation(self, entity: Union[Reservation, Order]) -> Optional[str]:
        if entity.client_id and entity.client_id in self._clients:
            return entity.client_id
        # Guest bookings carry only a name; match it within the host
        if entity.client_name:
            wanted = entity.client_name.strip().lower()
            for client in self._clients.values():
                if client.host_id == entity.host_id and client.name.strip().lower() == wanted:
                    return client.client_id
        return None


class InMemoryHostSettings(HostSettings):

    def __init__(self):
        self._loyalty: Dict[str, LoyaltyConfig] = {}

    def set_loyalty_config(self, host_id: str, config: LoyaltyConfig) -> None:
        self._loyalty[host_id] = config

    async def get_loyalty_config(self, host_id: str) -> LoyaltyConfig:
        return self._loyalty.get(host_id, LoyaltyConfig())
