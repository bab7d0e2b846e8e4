"""Calendar Index - active booked intervals per location"""
from bisect import bisect_left, insort
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.entities import Reservation
from domain.enums import LocationKind
from domain.value_objects import StayDates

Interval = Tuple[date, date, UUID]


class CalendarIndex:
    """Sorted projection of the active reservations of every location.

    Each location keeps its half-open ``[start, end)`` intervals ordered by
    start date. Tables occupy ``[day, day + 1)`` so the same-day rule falls
    out of ordinary interval intersection. Intervals of one location never
    overlap, which keeps their end dates sorted too: a conflict lookup only
    walks back from the first interval starting at or after the requested
    end until it reaches one that finishes before the requested start.
    """

    def __init__(self):
        self._intervals: Dict[str, List[Interval]] = defaultdict(list)
        self._locations: Dict[UUID, str] = {}

    @staticmethod
    def _span(kind: LocationKind, arrival: date, departure: Optional[date]) -> Tuple[date, date]:
        start, end = StayDates(arrival=arrival, departure=departure).interval(kind)
        if end <= start:
            end = start + timedelta(days=1)
        return start, end

    def conflicts(
        self,
        location_id: str,
        kind: LocationKind,
        arrival: date,
        departure: Optional[date],
        exclude_reservation_id: Optional[UUID] = None
    ) -> Optional[UUID]:
        """Return the id of an active reservation colliding with the span, if any"""
        start, end = self._span(kind, arrival, departure)
        entries = self._intervals.get(location_id, [])
        idx = bisect_left(entries, (end,))
        for entry_start, entry_end, reservation_id in reversed(entries[:idx]):
            if entry_end <= start:
                break
            if reservation_id != exclude_reservation_id:
                return reservation_id
        return None

    def register(self, reservation: Reservation) -> None:
        """Index an active reservation, replacing any previous interval it held"""
        self.release(reservation.reservation_id)
        if not reservation.is_active():
            return
        start, end = self._span(reservation.kind, reservation.stay.arrival, reservation.stay.departure)
        clash = self.conflicts(
            reservation.location_id, reservation.kind,
            reservation.stay.arrival, reservation.stay.departure
        )
        if clash is not None:
            raise ValueError(
                f"Reservation {reservation.reservation_id} overlaps {clash} on {reservation.location_id}"
            )
        insort(self._intervals[reservation.location_id], (start, end, reservation.reservation_id))
        self._locations[reservation.reservation_id] = reservation.location_id

    def release(self, reservation_id: UUID) -> bool:
        """Remove a reservation's interval from conflict consideration"""
        location_id = self._locations.pop(reservation_id, None)
        if location_id is None:
            return False
        entries = self._intervals[location_id]
        self._intervals[location_id] = [e for e in entries if e[2] != reservation_id]
        return True

    def rebuild(self, reservations: Iterable[Reservation]) -> None:
        """Recompute the whole projection from stored reservations"""
        self._intervals.clear()
        self._locations.clear()
        for reservation in reservations:
            self.register(reservation)

    def active_intervals(self, location_id: str) -> List[Interval]:
        return list(self._intervals.get(location_id, []))

    def location_of(self, reservation_id: UUID) -> Optional[str]:
        return self._locations.get(reservation_id)

    def __contains__(self, reservation_id: UUID) -> bool:
        return reservation_id in self._locations
