"""Payment proof persistence."""

from uuid import UUID

from sqlalchemy import select

from app.models.payment_proof import PaymentProof
from app.repositories.base import BaseRepository, paginate
from app.schemas.payment_proof import PaymentProofFilter


class PaymentProofRepository(BaseRepository):
    model = PaymentProof

    async def create(self, proof: PaymentProof) -> PaymentProof:
        return await self.add(proof)

    async def get_by_quote_id(self, quote_id: UUID) -> PaymentProof | None:
        result = await self.db.execute(select(PaymentProof).where(PaymentProof.quote_id == quote_id))
        return result.scalar_one_or_none()

    async def list(self, filter: PaymentProofFilter) -> list[PaymentProof]:
        query = select(PaymentProof)
        if filter.quote_id is not None:
            query = query.where(PaymentProof.quote_id == filter.quote_id)
        if filter.is_reviewed is not None:
            query = query.where(PaymentProof.is_reviewed.is_(filter.is_reviewed))
        query = paginate(query.order_by(PaymentProof.id), filter.skip, filter.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
