"""Domain Repository and Collaborator Interfaces"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List, Union
from uuid import UUID

from domain.entities import Reservation, Order
from domain.value_objects import Location, LoyaltyConfig


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_confirmation_code(self, code: str) -> Optional[Reservation]:
        """Find reservation by confirmation code"""
        pass

    @abstractmethod
    async def find_by_host(self, host_id: str, location_id: Optional[str] = None) -> List[Reservation]:
        """Find reservations of a host, optionally for one location"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        pass


class OrderRepository(ABC):
    """Repository interface for Order Aggregate"""

    @abstractmethod
    async def save(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        pass

    @abstractmethod
    async def find_by_host(self, host_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        pass


class LocationCatalog(ABC):
    """Read-only access to bookable locations"""

    @abstractmethod
    async def get_location(self, location_id: str) -> Location:
        """Return the location or raise LocationNotFoundError"""
        pass


class ClientStore(ABC):
    """Client balances owned by the client-profile context"""

    @abstractmethod
    async def get_client_credit(self, client_id: str) -> Decimal:
        pass

    @abstractmethod
    async def adjust_client_credit(self, client_id: str, delta: Decimal) -> Decimal:
        """Apply ``delta`` to the credit balance and return the new balance"""
        pass

    @abstractmethod
    async def adjust_client_points(self, client_id: str, delta: int) -> int:
        """Apply ``delta`` to the loyalty balance and return the new balance"""
        pass

    @abstractmethod
    async def resolve_client_for_reservation(self, entity: Union[Reservation, Order]) -> Optional[str]:
        """Find the client profile behind a booking, None for unlinked guests"""
        pass


class HostSettings(ABC):
    """Per-host configuration"""

    @abstractmethod
    async def get_loyalty_config(self, host_id: str) -> LoyaltyConfig:
        pass
