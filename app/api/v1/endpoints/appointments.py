"""Appointment booking endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_appointment_service, get_current_user, require_admin
from app.core.errors import ForbiddenError
from app.models.appointment import AppointmentStatus
from app.models.user import User, UserRole
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentFilter,
    AppointmentOut,
    AppointmentStatusChange,
    AppointmentUpdate,
)
from app.services.appointments import CachedAppointmentService

router = APIRouter()


def _check_owner(appointment: AppointmentOut, user: User) -> None:
    if user.role != UserRole.ADMIN and appointment.client_id != user.id:
        raise ForbiddenError("appointment belongs to another client")


@router.post("/", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    body: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    """Book a slot for an approved quote (or a strand test)."""
    return await service.create_appointment(current_user.id, body.slot_id, body.quote_id)


@router.get("/", response_model=list[AppointmentOut])
async def list_appointments(
    customer_id: Optional[UUID] = None,
    quote_id: Optional[UUID] = None,
    status: Optional[AppointmentStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    if current_user.role != UserRole.ADMIN:
        customer_id = current_user.id
    filter = AppointmentFilter(
        customer_id=customer_id,
        quote_id=quote_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return await service.list_appointments(filter)


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    appointment = await service.get_appointment(appointment_id)
    _check_owner(appointment, current_user)
    return appointment


@router.put("/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: UUID,
    changes: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    """Reschedule to another free slot."""
    _check_owner(await service.get_appointment(appointment_id), current_user)
    return await service.update_appointment(appointment_id, changes)


@router.patch("/{appointment_id}/status", response_model=AppointmentOut)
async def change_appointment_status(
    appointment_id: UUID,
    body: AppointmentStatusChange,
    admin: User = Depends(require_admin),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    return await service.change_appointment_status(appointment_id, body.status)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedAppointmentService = Depends(get_appointment_service),
):
    await service.delete_appointment(appointment_id)
