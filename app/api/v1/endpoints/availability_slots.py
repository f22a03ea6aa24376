"""Availability slot endpoints. Admins publish slots; anyone signed in can browse them."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_availability_service, get_current_user, require_admin
from app.models.user import User
from app.schemas.availability import (
    AvailabilitySlotCreate,
    AvailabilitySlotFilter,
    AvailabilitySlotOut,
    AvailabilitySlotUpdate,
    SlotState,
)
from app.services.availability import CachedAvailabilitySlotService

router = APIRouter()


@router.post("/", response_model=AvailabilitySlotOut, status_code=status.HTTP_201_CREATED)
async def create_availability_slot(
    body: AvailabilitySlotCreate,
    admin: User = Depends(require_admin),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    return await service.create_availability_slot(admin.id, body.start_time, body.end_time)


@router.get("/", response_model=list[AvailabilitySlotOut])
async def list_availability_slots(
    admin_id: Optional[UUID] = None,
    month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    state: Optional[SlotState] = None,
    skip: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    """List slots, optionally only the free or booked ones of a month."""
    filter = AvailabilitySlotFilter(
        admin_id=admin_id,
        month=month,
        start_date=start_date,
        end_date=end_date,
        state=state,
        skip=skip,
        limit=limit,
    )
    return await service.list_availability_slots(filter)


@router.get("/{slot_id}", response_model=AvailabilitySlotOut)
async def get_availability_slot(
    slot_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    return await service.get_availability_slot(slot_id)


@router.put("/{slot_id}", response_model=AvailabilitySlotOut)
async def update_availability_slot(
    slot_id: UUID,
    changes: AvailabilitySlotUpdate,
    admin: User = Depends(require_admin),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    return await service.update_availability_slot(slot_id, changes)


@router.post("/{slot_id}/release", response_model=AvailabilitySlotOut)
async def release_availability_slot(
    slot_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    """Free a booked slot, e.g. after its appointment was cancelled."""
    return await service.release_availability_slot(slot_id)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_availability_slot(
    slot_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedAvailabilitySlotService = Depends(get_availability_service),
):
    await service.delete_availability_slot(slot_id)
