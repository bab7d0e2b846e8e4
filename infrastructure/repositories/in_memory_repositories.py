"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict
from uuid import UUID

from domain.repositories import ReservationRepository, OrderRepository
from domain.entities import Reservation, Order


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_by_confirmation_code(self, code: str) -> Optional[Reservation]:
        """Find reservation by confirmation code"""
        for reservation in self._storage.values():
            if reservation.confirmation_code == code:
                return reservation
        return None

    async def find_by_host(self, host_id: str, location_id: Optional[str] = None) -> List[Reservation]:
        """Find reservations of a host, sorted by arrival"""
        found = [
            r for r in self._storage.values()
            if r.host_id == host_id and (location_id is None or r.location_id == location_id)
        ]
        return sorted(found, key=lambda r: r.stay.arrival)

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        return list(self._storage.values())

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation
            return reservation
        raise ValueError("Reservation not found")

    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        if reservation_id in self._storage:
            del self._storage[reservation_id]
            return True
        return False


class InMemoryOrderRepository(OrderRepository):
    """In-memory implementation of OrderRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Order] = {}

    async def save(self, order: Order) -> Order:
        self._storage[order.order_id] = order
        return order

    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        return self._storage.get(order_id)

    async def find_by_host(self, host_id: str) -> List[Order]:
        found = [o for o in self._storage.values() if o.host_id == host_id]
        return sorted(found, key=lambda o: o.created_at)

    async def update(self, order: Order) -> Order:
        if order.order_id in self._storage:
            self._storage[order.order_id] = order
            return order
        raise ValueError("Order not found")
