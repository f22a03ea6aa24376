"""Appointment persistence. Time windows are evaluated against the joined slot."""

from uuid import UUID

from sqlalchemy import select

from app.models.appointment import Appointment
from app.models.availability_slot import AvailabilitySlot
from app.repositories.base import BaseRepository, paginate
from app.schemas.appointment import AppointmentFilter


class AppointmentRepository(BaseRepository):
    model = Appointment

    async def create(self, appointment: Appointment) -> Appointment:
        # A second appointment for the same quote violates the unique index
        return await self.add(appointment)

    async def get_by_quote_id(self, quote_id: UUID) -> Appointment | None:
        result = await self.db.execute(select(Appointment).where(Appointment.quote_id == quote_id))
        return result.scalar_one_or_none()

    async def list(self, filter: AppointmentFilter) -> list[Appointment]:
        query = select(Appointment).join(AvailabilitySlot, Appointment.slot_id == AvailabilitySlot.id)

        if filter.customer_id is not None:
            query = query.where(Appointment.client_id == filter.customer_id)
        if filter.quote_id is not None:
            query = query.where(Appointment.quote_id == filter.quote_id)
        if filter.status is not None:
            query = query.where(Appointment.status == filter.status)
        if filter.start_date is not None:
            query = query.where(AvailabilitySlot.start_time >= filter.start_date)
        if filter.end_date is not None:
            query = query.where(AvailabilitySlot.start_time <= filter.end_date)

        query = paginate(query.order_by(AvailabilitySlot.start_time, Appointment.id), filter.skip, filter.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
