"""Payment proof upload and review endpoints."""

from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from app.core.deps import get_current_user, get_payment_proof_service, require_admin
from app.models.user import User, UserRole
from app.schemas.payment_proof import PaymentProofFilter, PaymentProofOut, PaymentProofUpdate
from app.services.payment_proofs import CachedPaymentProofService

router = APIRouter()


@router.post("/", response_model=PaymentProofOut, status_code=status.HTTP_201_CREATED)
async def create_payment_proof(
    quote_id: UUID = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    """Upload the payment receipt for a quote. Only one per quote."""
    data = await file.read()
    client_id = None if current_user.role == UserRole.ADMIN else current_user.id
    return await service.create_payment_proof(quote_id, data, file.filename or "upload", client_id)


@router.get("/", response_model=list[PaymentProofOut])
async def list_payment_proofs(
    quote_id: Optional[UUID] = None,
    is_reviewed: Optional[bool] = None,
    skip: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    filter = PaymentProofFilter(quote_id=quote_id, is_reviewed=is_reviewed, skip=skip, limit=limit)
    return await service.list_payment_proofs(filter)


@router.get("/{proof_id}", response_model=PaymentProofOut)
async def get_payment_proof(
    proof_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    return await service.fetch_payment_proof(proof_id)


@router.get("/{proof_id}/file")
async def download_payment_proof(
    proof_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    proof, data = await service.get_payment_proof(proof_id)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{proof.url}"'},
    )


@router.patch("/{proof_id}", response_model=PaymentProofOut)
async def update_payment_proof(
    proof_id: UUID,
    changes: PaymentProofUpdate,
    admin: User = Depends(require_admin),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    """Mark a proof as reviewed (or back to unreviewed)."""
    return await service.update_payment_proof(proof_id, changes)


@router.delete("/{proof_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_proof(
    proof_id: UUID,
    admin: User = Depends(require_admin),
    service: CachedPaymentProofService = Depends(get_payment_proof_service),
):
    await service.delete_payment_proof(proof_id)
