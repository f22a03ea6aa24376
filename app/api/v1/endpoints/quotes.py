"""Quote and quote image endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from app.core.deps import get_current_user, get_quote_service, require_admin
from app.core.errors import ForbiddenError
from app.models.quote import QuoteState
from app.models.user import User, UserRole
from app.schemas.quote import (
    QuoteDetailOut,
    QuoteFilter,
    QuoteImageOut,
    QuoteOut,
    QuoteStateChange,
    QuoteUpdate,
)
from app.services.quotes import CachedQuoteService

router = APIRouter()


def _check_owner(quote: QuoteOut, user: User) -> None:
    if user.role != UserRole.ADMIN and quote.client_id != user.id:
        raise ForbiddenError("quote belongs to another client")


@router.post("/", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
async def create_quote(
    type_of_service_id: UUID = Form(...),
    description: str = Form(...),
    requested_time: Optional[datetime] = Form(None),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    """Request a quote. The uploaded image is required."""
    data = await file.read()
    return await service.create_quote(
        type_of_service_id=type_of_service_id,
        client_id=current_user.id,
        description=description,
        file_data=data,
        file_name=file.filename or "upload",
        requested_time=requested_time,
    )


@router.get("/", response_model=list[QuoteOut])
async def list_quotes(
    type_of_service_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    state: Optional[QuoteState] = None,
    skip: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    # Clients only ever see their own quotes
    if current_user.role != UserRole.ADMIN:
        client_id = current_user.id
    filter = QuoteFilter(
        type_of_service_id=type_of_service_id,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
        state=state,
        skip=skip,
        limit=limit,
    )
    return await service.list_quotes(filter)


@router.get("/images/{image_id}")
async def get_quote_image(
    image_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    """Download a quote image."""
    image, data = await service.get_quote_image(image_id)
    _check_owner(await service.fetch_quote(image.quote_id), current_user)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{image.url}"'},
    )


@router.delete("/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote_image(
    image_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedQuoteService = Depends(get_quote_service),
):
    await service.delete_quote_image(image_id)


@router.get("/{quote_id}", response_model=QuoteDetailOut)
async def get_quote(
    quote_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    quote, images = await service.get_quote(quote_id)
    _check_owner(quote, current_user)
    return QuoteDetailOut(quote=quote, images=images)


@router.put("/{quote_id}", response_model=QuoteOut)
async def update_quote(
    quote_id: UUID,
    changes: QuoteUpdate,
    admin: User = Depends(require_admin),
    service: CachedQuoteService = Depends(get_quote_service),
):
    return await service.update_quote(quote_id, changes)


@router.patch("/{quote_id}/state", response_model=QuoteOut)
async def change_quote_state(
    quote_id: UUID,
    body: QuoteStateChange,
    admin: User = Depends(require_admin),
    service: CachedQuoteService = Depends(get_quote_service),
):
    """Approve, reject or ask for a strand test."""
    return await service.change_quote_state(quote_id, body.state)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedQuoteService = Depends(get_quote_service),
):
    await service.delete_quote(quote_id)


@router.get("/{quote_id}/images", response_model=list[QuoteImageOut])
async def list_quote_images(
    quote_id: UUID,
    skip: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    _check_owner(await service.fetch_quote(quote_id), current_user)
    return await service.list_quote_images(quote_id, skip, limit)


@router.post("/{quote_id}/images", response_model=QuoteImageOut, status_code=status.HTTP_201_CREATED)
async def add_quote_image(
    quote_id: UUID,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: CachedQuoteService = Depends(get_quote_service),
):
    _check_owner(await service.fetch_quote(quote_id), current_user)
    data = await file.read()
    return await service.add_quote_image(quote_id, data, file.filename or "upload")
