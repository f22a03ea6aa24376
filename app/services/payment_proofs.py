"""Payment proofs: one uploaded receipt per quote, reviewed by an admin."""

import logging
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    ConflictingDataError,
    DomainError,
    ForbiddenError,
    InternalError,
    NoUpdatedDataError,
    service_boundary,
)
from app.models.payment_proof import PaymentProof
from app.repositories.payment_proofs import PaymentProofRepository
from app.repositories.quotes import QuoteRepository
from app.schemas.payment_proof import PaymentProofFilter, PaymentProofOut, PaymentProofUpdate
from app.services.blob_storage import FileStore
from app.services.cache import ServiceCache, generate_cache_key, generate_cache_key_params
from app.services.uploads import discard_upload, save_upload

logger = logging.getLogger(__name__)


class PaymentProofService:
    def __init__(self, db: AsyncSession, file_store: FileStore):
        self.db = db
        self.proofs = PaymentProofRepository(db)
        self.quotes = QuoteRepository(db)
        self.file_store = file_store

    @service_boundary
    async def create_payment_proof(
        self, quote_id: UUID, file_data: bytes, file_name: str, client_id: Optional[UUID] = None
    ) -> PaymentProofOut:
        """Store the receipt and record it. ``client_id``, when given, must own the quote."""
        quote = await self.quotes.get_by_id(quote_id)
        if client_id is not None and quote.client_id != client_id:
            raise ForbiddenError("quote belongs to another client")
        if await self.proofs.get_by_quote_id(quote_id) is not None:
            raise ConflictingDataError(f"quote {quote_id} already has a payment proof")

        path = await save_upload(self.file_store, file_data, file_name)

        try:
            async with self.proofs.transaction() as tx:
                proof = await tx.create(PaymentProof(id=uuid4(), quote_id=quote_id, url=path, is_reviewed=False))
                created = PaymentProofOut.model_validate(proof)
        except Exception as e:
            logger.error("Payment proof insert failed, discarding uploaded file %s: %s", path, e)
            await discard_upload(self.db, self.file_store, path, "payment_proof_create")
            if isinstance(e, DomainError):
                raise
            raise InternalError("could not create payment proof") from e

        logger.info("Payment proof %s uploaded for quote %s", created.id, quote_id)
        return created

    @service_boundary
    async def fetch_payment_proof(self, proof_id: UUID) -> PaymentProofOut:
        return PaymentProofOut.model_validate(await self.proofs.get_by_id(proof_id))

    @service_boundary
    async def read_file(self, path: str) -> bytes:
        return await self.file_store.get(path)

    @service_boundary
    async def get_payment_proof(self, proof_id: UUID) -> tuple[PaymentProofOut, bytes]:
        """Metadata plus the stored file bytes."""
        proof = await self.fetch_payment_proof(proof_id)
        return proof, await self.read_file(proof.url)

    @service_boundary
    async def list_payment_proofs(self, filter: PaymentProofFilter) -> list[PaymentProofOut]:
        return [PaymentProofOut.model_validate(p) for p in await self.proofs.list(filter)]

    @service_boundary
    async def update_payment_proof(self, proof_id: UUID, changes: PaymentProofUpdate) -> PaymentProofOut:
        proof = await self.proofs.get_by_id(proof_id)
        if proof.is_reviewed == changes.is_reviewed:
            raise NoUpdatedDataError()
        async with self.proofs.transaction() as tx:
            proof = await tx.update(proof, {"is_reviewed": changes.is_reviewed})
            return PaymentProofOut.model_validate(proof)

    @service_boundary
    async def delete_payment_proof(self, proof_id: UUID) -> None:
        proof = PaymentProofOut.model_validate(await self.proofs.get_by_id(proof_id))
        try:
            async with self.proofs.transaction() as tx:
                await self.file_store.delete(proof.url)
                await tx.delete(proof_id)
        except Exception as e:
            logger.error("Payment proof %s delete failed: %s", proof_id, e)
            raise InternalError("could not delete payment proof") from e
        logger.info("Payment proof %s deleted", proof_id)


class CachedPaymentProofService:
    """Keys: ``paymentProof:<id>`` and ``paymentProofs:<filter hash>``. File bytes are never cached."""

    def __init__(self, inner: PaymentProofService, cache: ServiceCache):
        self.inner = inner
        self.cache = cache

    async def create_payment_proof(
        self, quote_id: UUID, file_data: bytes, file_name: str, client_id: Optional[UUID] = None
    ) -> PaymentProofOut:
        proof = await self.inner.create_payment_proof(quote_id, file_data, file_name, client_id)
        await self.cache.store(generate_cache_key("paymentProof", proof.id), proof, PaymentProofOut)
        await self.cache.invalidate(prefixes=("paymentProofs",))
        return proof

    async def fetch_payment_proof(self, proof_id: UUID) -> PaymentProofOut:
        key = generate_cache_key("paymentProof", proof_id)
        proof = await self.cache.fetch(key, PaymentProofOut)
        if proof is None:
            proof = await self.inner.fetch_payment_proof(proof_id)
            await self.cache.store(key, proof, PaymentProofOut)
        return proof

    async def get_payment_proof(self, proof_id: UUID) -> tuple[PaymentProofOut, bytes]:
        proof = await self.fetch_payment_proof(proof_id)
        return proof, await self.inner.read_file(proof.url)

    async def list_payment_proofs(self, filter: PaymentProofFilter) -> list[PaymentProofOut]:
        key = generate_cache_key("paymentProofs", generate_cache_key_params(filter))
        proofs = await self.cache.fetch(key, list[PaymentProofOut])
        if proofs is None:
            proofs = await self.inner.list_payment_proofs(filter)
            await self.cache.store(key, proofs, list[PaymentProofOut])
        return proofs

    async def update_payment_proof(self, proof_id: UUID, changes: PaymentProofUpdate) -> PaymentProofOut:
        proof = await self.inner.update_payment_proof(proof_id, changes)
        key = generate_cache_key("paymentProof", proof_id)
        await self.cache.invalidate(keys=(key,), prefixes=("paymentProofs",))
        await self.cache.store(key, proof, PaymentProofOut)
        return proof

    async def delete_payment_proof(self, proof_id: UUID) -> None:
        await self.inner.delete_payment_proof(proof_id)
        await self.cache.invalidate(
            keys=(generate_cache_key("paymentProof", proof_id),),
            prefixes=("paymentProofs",),
        )
