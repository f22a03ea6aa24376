"""Appointment booking.

An appointment binds a client, a slot and a quote. A quote that required a
strand test is booked straight away, flipping its slot in the same
transaction as the insert. Everything else starts as ``pending`` and is
confirmed later by an admin through a status change.
"""

import logging
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictingDataError, ForbiddenError, NoUpdatedDataError, service_boundary
from app.models.appointment import ALLOWED_TRANSITIONS, Appointment, AppointmentStatus
from app.models.quote import FINISHED_STATES, QuoteState
from app.repositories.appointments import AppointmentRepository
from app.repositories.availability_slots import AvailabilitySlotRepository
from app.repositories.quotes import QuoteRepository
from app.schemas.appointment import AppointmentFilter, AppointmentOut, AppointmentUpdate
from app.services.cache import ServiceCache, generate_cache_key, generate_cache_key_params

logger = logging.getLogger(__name__)

# Quote states an appointment can be created from
BOOKABLE_QUOTE_STATES = frozenset({QuoteState.APPROVED, QuoteState.REQUIRES_PROOF})


class AppointmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.appointments = AppointmentRepository(db)
        self.slots = AvailabilitySlotRepository(db)
        self.quotes = QuoteRepository(db)

    @service_boundary
    async def create_appointment(self, client_id: UUID, slot_id: UUID, quote_id: UUID) -> AppointmentOut:
        slot = await self.slots.get_by_id(slot_id)
        if slot.is_booked:
            raise ConflictingDataError("slot is already booked")

        quote = await self.quotes.get_by_id(quote_id)
        if quote.client_id != client_id:
            raise ForbiddenError("quote belongs to another client")
        if quote.state in FINISHED_STATES:
            raise ConflictingDataError(f"quote is already {quote.state.value}")
        if quote.state not in BOOKABLE_QUOTE_STATES:
            raise ForbiddenError(f"quote in state {quote.state.value} cannot be booked")

        status = AppointmentStatus.BOOKED if quote.state == QuoteState.REQUIRES_PROOF else AppointmentStatus.PENDING

        async with self.appointments.transaction() as tx:
            # Conditional flip: a concurrent booking of the same slot loses here
            if status == AppointmentStatus.BOOKED and not await AvailabilitySlotRepository(tx.db).mark_booked(slot_id):
                raise ConflictingDataError("slot is already booked")
            appointment = await tx.create(
                Appointment(id=uuid4(), client_id=client_id, slot_id=slot_id, quote_id=quote_id, status=status)
            )
            created = AppointmentOut.model_validate(appointment)

        logger.info("Appointment %s created for quote %s (%s)", created.id, quote_id, created.status.value)
        return created

    @service_boundary
    async def get_appointment(self, appointment_id: UUID) -> AppointmentOut:
        return AppointmentOut.model_validate(await self.appointments.get_by_id(appointment_id))

    @service_boundary
    async def list_appointments(self, filter: AppointmentFilter) -> list[AppointmentOut]:
        return [AppointmentOut.model_validate(a) for a in await self.appointments.list(filter)]

    @service_boundary
    async def update_appointment(self, appointment_id: UUID, changes: AppointmentUpdate) -> AppointmentOut:
        """Move an appointment to another free slot. The old slot is not released."""
        appointment = await self.appointments.get_by_id(appointment_id)
        if changes.slot_id is None or changes.slot_id == appointment.slot_id:
            raise NoUpdatedDataError()
        if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            raise ForbiddenError(f"a {appointment.status.value} appointment cannot be rescheduled")

        slot = await self.slots.get_by_id(changes.slot_id)
        if slot.is_booked:
            raise ConflictingDataError("slot is already booked")

        async with self.appointments.transaction() as tx:
            if appointment.status == AppointmentStatus.BOOKED and not await self.slots.mark_booked(slot.id):
                raise ConflictingDataError("slot is already booked")
            appointment = await tx.update(appointment, {"slot_id": changes.slot_id})
            return AppointmentOut.model_validate(appointment)

    @service_boundary
    async def change_appointment_status(self, appointment_id: UUID, status: AppointmentStatus) -> AppointmentOut:
        """Admin confirmation, cancellation or completion.

        Confirming (pending → booked) books the slot. Cancelling never frees
        the slot; an admin releases it explicitly.
        """
        appointment = await self.appointments.get_by_id(appointment_id)
        if appointment.status == status:
            raise NoUpdatedDataError()
        if status not in ALLOWED_TRANSITIONS[appointment.status]:
            raise ForbiddenError(f"appointment cannot go from {appointment.status.value} to {status.value}")

        async with self.appointments.transaction() as tx:
            if status == AppointmentStatus.BOOKED and not await self.slots.mark_booked(appointment.slot_id):
                raise ConflictingDataError("slot is already booked")
            appointment = await tx.update(appointment, {"status": status})
            updated = AppointmentOut.model_validate(appointment)

        logger.info("Appointment %s is now %s", appointment_id, status.value)
        return updated

    @service_boundary
    async def delete_appointment(self, appointment_id: UUID) -> AppointmentOut:
        appointment = AppointmentOut.model_validate(await self.appointments.get_by_id(appointment_id))
        async with self.appointments.transaction() as tx:
            await tx.delete(appointment_id)
        logger.info("Appointment %s deleted", appointment_id)
        return appointment


class CachedAppointmentService:
    """Keys: ``appointment:<id>`` and ``appointments:<filter hash>``.

    Slot free/booked state depends on appointments, so every write also drops
    ``availabilitySlots:*`` and the affected ``availabilitySlot:<id>``.
    """

    def __init__(self, inner: AppointmentService, cache: ServiceCache):
        self.inner = inner
        self.cache = cache

    async def create_appointment(self, client_id: UUID, slot_id: UUID, quote_id: UUID) -> AppointmentOut:
        appointment = await self.inner.create_appointment(client_id, slot_id, quote_id)
        await self.cache.store(generate_cache_key("appointment", appointment.id), appointment, AppointmentOut)
        await self._invalidate_lists(appointment.slot_id)
        return appointment

    async def get_appointment(self, appointment_id: UUID) -> AppointmentOut:
        key = generate_cache_key("appointment", appointment_id)
        appointment = await self.cache.fetch(key, AppointmentOut)
        if appointment is None:
            appointment = await self.inner.get_appointment(appointment_id)
            await self.cache.store(key, appointment, AppointmentOut)
        return appointment

    async def list_appointments(self, filter: AppointmentFilter) -> list[AppointmentOut]:
        key = generate_cache_key("appointments", generate_cache_key_params(filter))
        appointments = await self.cache.fetch(key, list[AppointmentOut])
        if appointments is None:
            appointments = await self.inner.list_appointments(filter)
            await self.cache.store(key, appointments, list[AppointmentOut])
        return appointments

    async def update_appointment(self, appointment_id: UUID, changes: AppointmentUpdate) -> AppointmentOut:
        appointment = await self.inner.update_appointment(appointment_id, changes)
        await self._refresh(appointment)
        return appointment

    async def change_appointment_status(self, appointment_id: UUID, status: AppointmentStatus) -> AppointmentOut:
        appointment = await self.inner.change_appointment_status(appointment_id, status)
        await self._refresh(appointment)
        return appointment

    async def delete_appointment(self, appointment_id: UUID) -> AppointmentOut:
        appointment = await self.inner.delete_appointment(appointment_id)
        await self.cache.invalidate(keys=(generate_cache_key("appointment", appointment_id),))
        await self._invalidate_lists(appointment.slot_id)
        return appointment

    async def _refresh(self, appointment: AppointmentOut) -> None:
        key = generate_cache_key("appointment", appointment.id)
        await self.cache.invalidate(keys=(key,))
        await self._invalidate_lists(appointment.slot_id)
        await self.cache.store(key, appointment, AppointmentOut)

    async def _invalidate_lists(self, slot_id: UUID) -> None:
        await self.cache.invalidate(
            keys=(generate_cache_key("availabilitySlot", slot_id),),
            prefixes=("appointments", "availabilitySlots"),
        )
