"""Availability slots published by admins."""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictingDataError, NoUpdatedDataError, service_boundary
from app.models.availability_slot import AvailabilitySlot
from app.repositories.availability_slots import AvailabilitySlotRepository
from app.repositories.users import UserRepository
from app.schemas.availability import (
    AvailabilitySlotFilter,
    AvailabilitySlotOut,
    AvailabilitySlotUpdate,
)
from app.services.cache import ServiceCache, generate_cache_key, generate_cache_key_params

logger = logging.getLogger(__name__)


class AvailabilitySlotService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.slots = AvailabilitySlotRepository(db)
        self.users = UserRepository(db)

    @service_boundary
    async def create_availability_slot(self, admin_id: UUID, start_time: datetime, end_time: datetime) -> AvailabilitySlotOut:
        await self.users.get_by_id(admin_id)
        async with self.slots.transaction() as tx:
            slot = await tx.create(
                AvailabilitySlot(
                    id=uuid4(),
                    admin_id=admin_id,
                    start_time=start_time,
                    end_time=end_time,
                    is_booked=False,
                )
            )
            created = AvailabilitySlotOut.model_validate(slot)
        logger.info("Availability slot %s created by admin %s", created.id, admin_id)
        return created

    @service_boundary
    async def get_availability_slot(self, slot_id: UUID) -> AvailabilitySlotOut:
        return AvailabilitySlotOut.model_validate(await self.slots.get_by_id(slot_id))

    @service_boundary
    async def list_availability_slots(self, filter: AvailabilitySlotFilter) -> list[AvailabilitySlotOut]:
        return [AvailabilitySlotOut.model_validate(s) for s in await self.slots.list(filter)]

    @service_boundary
    async def update_availability_slot(self, slot_id: UUID, changes: AvailabilitySlotUpdate) -> AvailabilitySlotOut:
        slot = await self.slots.get_by_id(slot_id)

        values = changes.model_dump(exclude_none=True)
        changed = {key: value for key, value in values.items() if getattr(slot, key) != value}
        if not changed:
            raise NoUpdatedDataError()

        start = changed.get("start_time", slot.start_time)
        end = changed.get("end_time", slot.end_time)
        if end <= start:
            raise ConflictingDataError("end_time must be after start_time")

        async with self.slots.transaction() as tx:
            slot = await tx.update(slot, changed)
            return AvailabilitySlotOut.model_validate(slot)

    @service_boundary
    async def delete_availability_slot(self, slot_id: UUID) -> None:
        slot = await self.slots.get_by_id(slot_id)
        if slot.is_booked:
            raise ConflictingDataError("a booked slot cannot be deleted")
        async with self.slots.transaction() as tx:
            await tx.delete(slot_id)
        logger.info("Availability slot %s deleted", slot_id)

    @service_boundary
    async def release_availability_slot(self, slot_id: UUID) -> AvailabilitySlotOut:
        """Make a booked slot bookable again. Never done implicitly."""
        slot = await self.slots.get_by_id(slot_id)
        if not slot.is_booked:
            raise NoUpdatedDataError("slot is not booked")
        async with self.slots.transaction() as tx:
            if not await tx.release(slot_id):
                raise ConflictingDataError("slot is held by a booked or completed appointment")
        logger.info("Availability slot %s released", slot_id)
        return await self.get_availability_slot(slot_id)


class CachedAvailabilitySlotService:
    """Keys: ``availabilitySlot:<id>`` and ``availabilitySlots:<filter hash>``."""

    def __init__(self, inner: AvailabilitySlotService, cache: ServiceCache):
        self.inner = inner
        self.cache = cache

    async def create_availability_slot(self, admin_id: UUID, start_time: datetime, end_time: datetime) -> AvailabilitySlotOut:
        slot = await self.inner.create_availability_slot(admin_id, start_time, end_time)
        await self.cache.store(generate_cache_key("availabilitySlot", slot.id), slot, AvailabilitySlotOut)
        await self.cache.invalidate(prefixes=("availabilitySlots",))
        return slot

    async def get_availability_slot(self, slot_id: UUID) -> AvailabilitySlotOut:
        key = generate_cache_key("availabilitySlot", slot_id)
        slot = await self.cache.fetch(key, AvailabilitySlotOut)
        if slot is None:
            slot = await self.inner.get_availability_slot(slot_id)
            await self.cache.store(key, slot, AvailabilitySlotOut)
        return slot

    async def list_availability_slots(self, filter: AvailabilitySlotFilter) -> list[AvailabilitySlotOut]:
        key = generate_cache_key("availabilitySlots", generate_cache_key_params(filter))
        slots = await self.cache.fetch(key, list[AvailabilitySlotOut])
        if slots is None:
            slots = await self.inner.list_availability_slots(filter)
            await self.cache.store(key, slots, list[AvailabilitySlotOut])
        return slots

    async def update_availability_slot(self, slot_id: UUID, changes: AvailabilitySlotUpdate) -> AvailabilitySlotOut:
        slot = await self.inner.update_availability_slot(slot_id, changes)
        await self._refresh(slot)
        return slot

    async def release_availability_slot(self, slot_id: UUID) -> AvailabilitySlotOut:
        slot = await self.inner.release_availability_slot(slot_id)
        await self._refresh(slot)
        return slot

    async def _refresh(self, slot: AvailabilitySlotOut) -> None:
        key = generate_cache_key("availabilitySlot", slot.id)
        await self.cache.invalidate(keys=(key,), prefixes=("availabilitySlots",))
        await self.cache.store(key, slot, AvailabilitySlotOut)

    async def delete_availability_slot(self, slot_id: UUID) -> None:
        await self.inner.delete_availability_slot(slot_id)
        await self.cache.invalidate(
            keys=(generate_cache_key("availabilitySlot", slot_id),),
            prefixes=("availabilitySlots",),
        )
