"""Quote and quote image persistence."""

from uuid import UUID

from sqlalchemy import select

from app.models.quote import Quote, QuoteImage
from app.repositories.base import BaseRepository, paginate
from app.schemas.quote import QuoteFilter


class QuoteRepository(BaseRepository):
    model = Quote

    async def create(self, quote: Quote) -> Quote:
        return await self.add(quote)

    async def list(self, filter: QuoteFilter) -> list[Quote]:
        query = select(Quote)

        if filter.type_of_service_id is not None:
            query = query.where(Quote.type_of_service_id == filter.type_of_service_id)
        if filter.client_id is not None:
            query = query.where(Quote.client_id == filter.client_id)
        if filter.start_date is not None:
            query = query.where(Quote.time >= filter.start_date)
        if filter.end_date is not None:
            query = query.where(Quote.time <= filter.end_date)
        if filter.state is not None:
            query = query.where(Quote.state == filter.state)

        query = paginate(query.order_by(Quote.time, Quote.id), filter.skip, filter.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())


class QuoteImageRepository(BaseRepository):
    model = QuoteImage

    async def create(self, image: QuoteImage) -> QuoteImage:
        return await self.add(image)

    async def list(self, quote_id: UUID | None = None, skip: int = 1, limit: int = 0) -> list[QuoteImage]:
        query = select(QuoteImage)
        if quote_id is not None:
            query = query.where(QuoteImage.quote_id == quote_id)
        query = paginate(query.order_by(QuoteImage.id), skip, limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
