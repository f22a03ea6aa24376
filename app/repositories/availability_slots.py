"""Availability slot persistence, including the conditional booking flip."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update, exists, and_

from app.models.appointment import Appointment, BLOCKING_STATUSES
from app.models.availability_slot import AvailabilitySlot
from app.repositories.base import BaseRepository, paginate
from app.schemas.availability import AvailabilitySlotFilter, SlotState

logger = logging.getLogger(__name__)


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """'2025-06' → (2025-06-01, 2025-07-01)."""
    year, mon = (int(part) for part in month.split("-"))
    start = datetime(year, mon, 1)
    end = datetime(year + 1, 1, 1) if mon == 12 else datetime(year, mon + 1, 1)
    return start, end


class AvailabilitySlotRepository(BaseRepository):
    model = AvailabilitySlot

    async def create(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        return await self.add(slot)

    async def list(self, filter: AvailabilitySlotFilter) -> list[AvailabilitySlot]:
        query = select(AvailabilitySlot)

        if filter.admin_id is not None:
            query = query.where(AvailabilitySlot.admin_id == filter.admin_id)

        if filter.month is not None:
            start, end = month_bounds(filter.month)
            query = query.where(AvailabilitySlot.start_time >= start, AvailabilitySlot.start_time < end)
        if filter.start_date is not None:
            query = query.where(AvailabilitySlot.start_time >= filter.start_date)
        if filter.end_date is not None:
            query = query.where(AvailabilitySlot.start_time <= filter.end_date)

        if filter.state is not None:
            blocking = exists().where(
                and_(
                    Appointment.slot_id == AvailabilitySlot.id,
                    Appointment.status.in_(BLOCKING_STATUSES),
                )
            )
            if filter.state == SlotState.FREE:
                query = query.where(~blocking, AvailabilitySlot.is_booked.is_(False))
            else:
                query = query.where(blocking)

        query = paginate(query.order_by(AvailabilitySlot.start_time, AvailabilitySlot.id), filter.skip, filter.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_booked(self, slot_id: UUID) -> bool:
        """Flip ``is_booked`` false → true in one statement.

        Returns False when the slot was already booked (or is gone), so two
        concurrent bookings of the same slot cannot both succeed.
        """
        result = await self.db.execute(
            update(AvailabilitySlot)
            .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.is_booked.is_(False))
            .values(is_booked=True)
            .returning(AvailabilitySlot.id)
            .execution_options(synchronize_session="fetch")
        )
        booked = result.first() is not None
        if not booked:
            logger.info("Slot %s could not be booked: already taken", slot_id)
        return booked

    async def release(self, slot_id: UUID) -> bool:
        """Flip ``is_booked`` true → false unless a booked or completed appointment still holds the slot."""
        held = exists().where(
            and_(
                Appointment.slot_id == AvailabilitySlot.id,
                Appointment.status.in_(BLOCKING_STATUSES),
            )
        )
        result = await self.db.execute(
            update(AvailabilitySlot)
            .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.is_booked.is_(True), ~held)
            .values(is_booked=False)
            .returning(AvailabilitySlot.id)
            .execution_options(synchronize_session="fetch")
        )
        return result.first() is not None
