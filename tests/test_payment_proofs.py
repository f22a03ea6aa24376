"""Tests for payment proof upload and review."""

import uuid

import pytest
from sqlalchemy import select

from app.core.errors import ConflictingDataError, ForbiddenError, InternalError, NoUpdatedDataError, NotFoundError
from app.models.payment_proof import PaymentProof
from app.models.quote import QuoteState
from app.models.user import User, UserRole
from app.schemas.payment_proof import PaymentProofFilter, PaymentProofUpdate


@pytest.mark.asyncio
async def test_create_and_download_proof(proof_service, make_quote, file_store):
    quote = await make_quote(QuoteState.REQUIRES_PROOF)

    proof = await proof_service.create_payment_proof(quote.id, b"%PDF-1.4 recibo", "recibo.pdf")

    assert proof.is_reviewed is False
    assert proof.url in file_store.files

    meta, data = await proof_service.get_payment_proof(proof.id)
    assert meta == proof
    assert data == b"%PDF-1.4 recibo"


@pytest.mark.asyncio
async def test_one_proof_per_quote(proof_service, db, make_quote, file_store):
    quote = await make_quote(QuoteState.REQUIRES_PROOF)
    await proof_service.create_payment_proof(quote.id, b"first", "uno.pdf")

    with pytest.raises(ConflictingDataError):
        await proof_service.create_payment_proof(quote.id, b"second", "dos.pdf")

    # The second file was never uploaded
    assert len(file_store.files) == 1
    rows = (await db.execute(select(PaymentProof))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_proof_for_another_clients_quote(proof_service, db, make_quote, customer, file_store):
    quote = await make_quote(QuoteState.REQUIRES_PROOF)
    stranger = User(id=uuid.uuid4(), name="Lucía", last_name="Pérez", email="lucia@example.com", role=UserRole.CLIENT)
    db.add(stranger)
    await db.commit()

    with pytest.raises(ForbiddenError):
        await proof_service.create_payment_proof(quote.id, b"data", "recibo.pdf", client_id=stranger.id)
    assert file_store.files == {}

    # The owner can still upload
    proof = await proof_service.create_payment_proof(quote.id, b"data", "recibo.pdf", client_id=customer.id)
    assert proof.quote_id == quote.id


@pytest.mark.asyncio
async def test_proof_for_missing_quote(proof_service, file_store):
    with pytest.raises(NotFoundError):
        await proof_service.create_payment_proof(uuid.uuid4(), b"data", "recibo.pdf")
    assert file_store.files == {}


@pytest.mark.asyncio
async def test_proof_upload_failure(proof_service, db, make_quote, file_store):
    quote = await make_quote()
    file_store.fail_save = True

    with pytest.raises(InternalError):
        await proof_service.create_payment_proof(quote.id, b"data", "recibo.pdf")

    assert (await db.execute(select(PaymentProof))).scalars().all() == []


@pytest.mark.asyncio
async def test_review_proof(proof_service, make_quote, cache):
    quote = await make_quote()
    proof = await proof_service.create_payment_proof(quote.id, b"data", "recibo.pdf")

    with pytest.raises(NoUpdatedDataError):
        await proof_service.update_payment_proof(proof.id, PaymentProofUpdate(is_reviewed=False))

    reviewed = await proof_service.update_payment_proof(proof.id, PaymentProofUpdate(is_reviewed=True))
    assert reviewed.is_reviewed is True
    assert (await proof_service.fetch_payment_proof(proof.id)).is_reviewed is True


@pytest.mark.asyncio
async def test_list_proofs_by_review_flag(proof_service, make_quote):
    first = await proof_service.create_payment_proof((await make_quote()).id, b"a", "a.pdf")
    second = await proof_service.create_payment_proof((await make_quote()).id, b"b", "b.pdf")
    await proof_service.update_payment_proof(second.id, PaymentProofUpdate(is_reviewed=True))

    pending = await proof_service.list_payment_proofs(PaymentProofFilter(is_reviewed=False))
    assert [p.id for p in pending] == [first.id]


@pytest.mark.asyncio
async def test_delete_proof_removes_file(proof_service, make_quote, file_store):
    quote = await make_quote()
    proof = await proof_service.create_payment_proof(quote.id, b"data", "recibo.pdf")

    await proof_service.delete_payment_proof(proof.id)

    assert file_store.files == {}
    with pytest.raises(NotFoundError):
        await proof_service.fetch_payment_proof(proof.id)
