# app/services/slot_store.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date as date_type, time
from threading import Lock
from time import monotonic
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import SlotAlreadyBooked, SlotNotFound, StoreUnavailable
from app.db.base import Base  # noqa: F401  # registers models on the metadata
from app.models.booked_slot import BookedSlot
from app.services.time_normalizer import format_time

logger = logging.getLogger(__name__)

_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError)

# Returned by FailoverSlotStore._from_primary when the primary was not used.
_UNAVAILABLE = object()


def _slot_label(slot_date: date_type, slot_time: time) -> str:
    return f"{slot_date.isoformat()} {format_time(slot_time)}"


class SlotStore(ABC):
    """
    Owner of all booking state.

    Every mutation of booked slots goes through `reserve` / `release`;
    `reserve` must be atomic per (date, time) so that concurrent callers
    see exactly one winner.
    """

    name: str = "abstract"

    @abstractmethod
    async def reserve(
        self,
        slot_date: date_type,
        slot_time: time,
        meeting_id: str | None = None,
    ) -> None:
        """Insert a reservation or raise SlotAlreadyBooked."""

    @abstractmethod
    async def release(self, slot_date: date_type, slot_time: time) -> None:
        """Remove a reservation or raise SlotNotFound."""

    @abstractmethod
    async def list_booked(self, slot_date: date_type) -> list[time]:
        """Return booked start times for a date, sorted ascending."""

    @abstractmethod
    async def is_booked(self, slot_date: date_type, slot_time: time) -> bool:
        ...


class InMemorySlotStore(SlotStore):
    """
    Process-local store: a mapping of date -> set of booked times.

    Not persisted across restarts and not shared between running instances,
    so bookings made here are invisible to any other replica.
    """

    name = "memory"

    def __init__(self) -> None:
        self._booked: dict[date_type, set[time]] = defaultdict(set)
        self._lock = Lock()

    async def reserve(
        self,
        slot_date: date_type,
        slot_time: time,
        meeting_id: str | None = None,
    ) -> None:
        with self._lock:
            times = self._booked[slot_date]
            if slot_time in times:
                raise SlotAlreadyBooked(
                    f"Slot {_slot_label(slot_date, slot_time)} is already booked.",
                    reason="Already booked",
                )
            times.add(slot_time)

    async def release(self, slot_date: date_type, slot_time: time) -> None:
        with self._lock:
            times = self._booked.get(slot_date)
            if not times or slot_time not in times:
                raise SlotNotFound(f"No booking for {_slot_label(slot_date, slot_time)}.")
            times.discard(slot_time)
            if not times:
                del self._booked[slot_date]

    async def list_booked(self, slot_date: date_type) -> list[time]:
        with self._lock:
            return sorted(self._booked.get(slot_date, ()))

    async def is_booked(self, slot_date: date_type, slot_time: time) -> bool:
        with self._lock:
            return slot_time in self._booked.get(slot_date, ())


class DatabaseSlotStore(SlotStore):
    """
    Durable store backed by the `booked_slots` table.

    `reserve` is a plain INSERT; the unique constraint on
    (slot_date, slot_time) rejects the loser of a race with IntegrityError.
    Connectivity problems surface as StoreUnavailable.
    """

    name = "database"

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def reserve(
        self,
        slot_date: date_type,
        slot_time: time,
        meeting_id: str | None = None,
    ) -> None:
        try:
            async with self._sessionmaker() as session:
                session.add(
                    BookedSlot(
                        slot_date=slot_date,
                        slot_time=slot_time,
                        meeting_id=meeting_id,
                    )
                )
                await session.commit()
        except IntegrityError as exc:
            raise SlotAlreadyBooked(
                f"Slot {_slot_label(slot_date, slot_time)} is already booked.",
                reason="Already booked",
            ) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(f"Database unavailable during reserve: {exc}") from exc

    async def release(self, slot_date: date_type, slot_time: time) -> None:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    delete(BookedSlot).where(
                        BookedSlot.slot_date == slot_date,
                        BookedSlot.slot_time == slot_time,
                    )
                )
                await session.commit()
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(f"Database unavailable during release: {exc}") from exc

        if not result.rowcount:
            raise SlotNotFound(f"No booking for {_slot_label(slot_date, slot_time)}.")

    async def list_booked(self, slot_date: date_type) -> list[time]:
        stmt = (
            select(BookedSlot.slot_time)
            .where(BookedSlot.slot_date == slot_date)
            .order_by(BookedSlot.slot_time.asc())
        )
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(f"Database unavailable during list: {exc}") from exc

    async def is_booked(self, slot_date: date_type, slot_time: time) -> bool:
        stmt = select(BookedSlot.id).where(
            BookedSlot.slot_date == slot_date,
            BookedSlot.slot_time == slot_time,
        )
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none() is not None
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(f"Database unavailable during lookup: {exc}") from exc


class FailoverSlotStore(SlotStore):
    """
    Wraps a durable store and an in-memory fallback.

    A StoreUnavailable from the primary serves that call from the fallback
    and leaves the primary alone for `retry_after_seconds`; after that it is
    tried again. Bookings taken by the fallback during an outage stay there,
    so reads merge both stores and `reserve` refuses slots either one holds.
    """

    def __init__(
        self,
        primary: SlotStore,
        fallback: SlotStore,
        *,
        retry_after_seconds: float = 30.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._retry_after_seconds = retry_after_seconds
        self._clock = clock
        self._retry_at: float | None = None

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._fallback.name if self.degraded else self._primary.name

    @property
    def degraded(self) -> bool:
        return self._retry_at is not None

    def mark_degraded(self, error: Exception) -> None:
        if self._retry_at is None:
            logger.warning(
                "Durable slot store unavailable (%s); using in-memory store, retrying in %ss. "
                "Bookings taken meanwhile are not shared across instances.",
                error,
                self._retry_after_seconds,
            )
        self._retry_at = self._clock() + self._retry_after_seconds

    def _mark_recovered(self) -> None:
        if self._retry_at is not None:
            logger.info("Durable slot store reachable again")
            self._retry_at = None

    async def _from_primary(self, method: str, *args, **kwargs) -> Any:
        """
        Run `method` on the primary, or return _UNAVAILABLE while it is
        cooling down or when this call failed.
        """
        if self._retry_at is not None and self._clock() < self._retry_at:
            return _UNAVAILABLE
        try:
            result = await getattr(self._primary, method)(*args, **kwargs)
        except StoreUnavailable as exc:
            self.mark_degraded(exc)
            return _UNAVAILABLE
        except (SlotAlreadyBooked, SlotNotFound):
            self._mark_recovered()
            raise
        self._mark_recovered()
        return result

    async def reserve(
        self,
        slot_date: date_type,
        slot_time: time,
        meeting_id: str | None = None,
    ) -> None:
        if await self._fallback.is_booked(slot_date, slot_time):
            raise SlotAlreadyBooked(
                f"Slot {_slot_label(slot_date, slot_time)} is already booked.",
                reason="Already booked",
            )
        result = await self._from_primary("reserve", slot_date, slot_time, meeting_id=meeting_id)
        if result is _UNAVAILABLE:
            await self._fallback.reserve(slot_date, slot_time, meeting_id=meeting_id)

    async def release(self, slot_date: date_type, slot_time: time) -> None:
        released = False
        if await self._fallback.is_booked(slot_date, slot_time):
            await self._fallback.release(slot_date, slot_time)
            released = True

        try:
            result = await self._from_primary("release", slot_date, slot_time)
        except SlotNotFound:
            if not released:
                raise
        else:
            released = released or result is not _UNAVAILABLE

        if not released:
            raise SlotNotFound(f"No booking for {_slot_label(slot_date, slot_time)}.")

    async def list_booked(self, slot_date: date_type) -> list[time]:
        booked = set(await self._fallback.list_booked(slot_date))
        result = await self._from_primary("list_booked", slot_date)
        if result is not _UNAVAILABLE:
            booked.update(result)
        return sorted(booked)

    async def is_booked(self, slot_date: date_type, slot_time: time) -> bool:
        if await self._fallback.is_booked(slot_date, slot_time):
            return True
        result = await self._from_primary("is_booked", slot_date, slot_time)
        return result is not _UNAVAILABLE and bool(result)
