"""Quote lifecycle: creation with its first image, updates, state changes and deletion.

``QuoteService`` talks to the database, the file store and the notifier.
``CachedQuoteService`` wraps it with read-through caching and invalidation.
"""

import logging
from datetime import datetime
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
from app.models.quote import ADMIN_TARGET_STATES, FINISHED_STATES, Quote, QuoteImage, QuoteState
from app.repositories.appointments import AppointmentRepository
from app.repositories.payment_proofs import PaymentProofRepository
from app.repositories.quotes import QuoteImageRepository, QuoteRepository
from app.repositories.types_of_service import TypeOfServiceRepository
from app.repositories.users import UserRepository
from app.schemas.quote import QuoteFilter, QuoteImageOut, QuoteOut, QuoteUpdate
from app.services.blob_storage import FileStore
from app.services.cache import ServiceCache, generate_cache_key, generate_cache_key_params
from app.services.email_service import EmailService
from app.services.uploads import discard_upload, save_upload
from app.utils.datetime_utils import to_naive_utc

logger = logging.getLogger(__name__)

# From which approval states an admin state change may move a quote
STATE_CHANGE_SOURCES = {
    QuoteState.APPROVED: frozenset({QuoteState.PENDING, QuoteState.REQUIRES_PROOF}),
    QuoteState.REJECTED: frozenset({QuoteState.PENDING, QuoteState.REQUIRES_PROOF}),
    QuoteState.REQUIRES_PROOF: frozenset({QuoteState.PENDING}),
}


class QuoteService:
    def __init__(self, db: AsyncSession, file_store: FileStore, notifier: EmailService):
        self.db = db
        self.quotes = QuoteRepository(db)
        self.images = QuoteImageRepository(db)
        self.users = UserRepository(db)
        self.types_of_service = TypeOfServiceRepository(db)
        self.file_store = file_store
        self.notifier = notifier

    @service_boundary
    async def create_quote(
        self,
        type_of_service_id: UUID,
        client_id: UUID,
        description: str,
        file_data: bytes,
        file_name: str,
        requested_time: Optional[datetime] = None,
    ) -> QuoteOut:
        """Create a quote together with its first image.

        The file is stored first. Quote and image rows are then inserted in
        one transaction; if it fails the stored file is deleted again.
        """
        service_type = await self.types_of_service.get_by_id(type_of_service_id)
        client = await self.users.get_by_id(client_id)
        client_name = client.full_name

        path = await save_upload(self.file_store, file_data, file_name)

        try:
            async with self.quotes.transaction() as tx:
                quote = await tx.create(
                    Quote(
                        id=uuid4(),
                        type_of_service_id=service_type.id,
                        client_id=client_id,
                        time=to_naive_utc(requested_time) if requested_time else datetime.utcnow(),
                        description=description,
                        state=QuoteState.PENDING,
                        price=service_type.price,
                        test_required=False,
                    )
                )
                await QuoteImageRepository(tx.db).create(QuoteImage(id=uuid4(), quote_id=quote.id, url=path))
                created = QuoteOut.model_validate(quote)
        except Exception as e:
            logger.error("Quote creation failed, discarding uploaded file %s: %s", path, e)
            await discard_upload(self.db, self.file_store, path, "quote_create")
            if isinstance(e, DomainError):
                raise
            raise InternalError("could not create quote") from e

        logger.info("Quote %s created for client %s", created.id, client_id)
        await self._notify_quote_created(created, client_name)
        return created

    async def _notify_quote_created(self, quote: QuoteOut, client_name: str) -> None:
        try:
            admin_emails = await self.users.get_admin_emails()
            if not admin_emails:
                logger.warning("No admins to notify about quote %s", quote.id)
                return
            await self.notifier.send_quote_created(admin_emails, quote.id, quote.description, client_name)
        except Exception as e:
            logger.warning("Failed to notify admins about quote %s: %s", quote.id, e)

    async def _notify_proof_required(self, quote: QuoteOut) -> None:
        try:
            client = await self.users.get_by_id(quote.client_id)
            await self.notifier.send_proof_required(client.email)
        except Exception as e:
            logger.warning("Failed to send proof-required email for quote %s: %s", quote.id, e)

    @service_boundary
    async def fetch_quote(self, quote_id: UUID) -> QuoteOut:
        return QuoteOut.model_validate(await self.quotes.get_by_id(quote_id))

    @service_boundary
    async def get_quote(self, quote_id: UUID) -> tuple[QuoteOut, list[QuoteImageOut]]:
        quote = await self.fetch_quote(quote_id)
        images = await self.list_quote_images(quote_id)
        return quote, images

    @service_boundary
    async def list_quotes(self, filter: QuoteFilter) -> list[QuoteOut]:
        return [QuoteOut.model_validate(q) for q in await self.quotes.list(filter)]

    @service_boundary
    async def update_quote(self, quote_id: UUID, changes: QuoteUpdate) -> QuoteOut:
        """Apply the non-empty fields of ``changes``.

        Raises NoUpdatedDataError when nothing would change. Moving the quote
        into ``requires_proof`` flags it for a strand test and emails the client.
        """
        quote = await self.quotes.get_by_id(quote_id)

        # Empty strings count as not provided
        values = {key: value for key, value in changes.model_dump(exclude_none=True).items() if value != ""}
        changed = {key: value for key, value in values.items() if getattr(quote, key) != value}
        if not changed:
            raise NoUpdatedDataError()

        if set(changed) - {"state"} and quote.state in FINISHED_STATES:
            raise ForbiddenError(f"quote is {quote.state.value} and can no longer be modified")

        # Referenced rows must exist
        if "type_of_service_id" in changed:
            await self.types_of_service.get_by_id(changed["type_of_service_id"])
        if "client_id" in changed:
            await self.users.get_by_id(changed["client_id"])

        entered_requires_proof = changed.get("state") == QuoteState.REQUIRES_PROOF
        if entered_requires_proof:
            changed["test_required"] = True

        async with self.quotes.transaction() as tx:
            quote = await tx.update(quote, changed)
            updated = QuoteOut.model_validate(quote)

        logger.info("Quote %s updated: %s", quote_id, sorted(changed))
        if entered_requires_proof:
            await self._notify_proof_required(updated)
        return updated

    @service_boundary
    async def change_quote_state(self, quote_id: UUID, state: str) -> QuoteOut:
        """Admin approval decision: approved, rejected or requires_proof."""
        try:
            target = QuoteState(state)
        except ValueError:
            raise ForbiddenError(f"unknown quote state {state!r}")
        if target not in ADMIN_TARGET_STATES:
            raise ForbiddenError(f"quotes cannot be moved to {target.value} by a state change")

        quote = await self.quotes.get_by_id(quote_id)
        if quote.state == target:
            raise NoUpdatedDataError()
        if quote.state not in STATE_CHANGE_SOURCES[target]:
            raise ForbiddenError(f"quote in state {quote.state.value} cannot become {target.value}")

        return await self.update_quote(quote_id, QuoteUpdate(state=target))

    @service_boundary
    async def delete_quote(self, quote_id: UUID) -> None:
        """Delete a quote, its image rows and their files in one transaction.

        Refused while an appointment or payment proof still references the quote.
        """
        await self.quotes.get_by_id(quote_id)
        if await AppointmentRepository(self.db).get_by_quote_id(quote_id) is not None:
            raise ConflictingDataError("quote has an appointment")
        if await PaymentProofRepository(self.db).get_by_quote_id(quote_id) is not None:
            raise ConflictingDataError("quote has a payment proof")
        images = [(image.id, image.url) for image in await self.images.list(quote_id=quote_id)]

        try:
            async with self.quotes.transaction() as tx:
                image_repo = QuoteImageRepository(tx.db)
                for image_id, url in images:
                    await self.file_store.delete(url)
                    await image_repo.delete(image_id)
                await tx.delete(quote_id)
        except Exception as e:
            logger.error("Quote %s delete failed: %s", quote_id, e)
            raise InternalError("could not delete quote") from e
        logger.info("Quote %s deleted with %d image(s)", quote_id, len(images))

    # --- images ---

    @service_boundary
    async def add_quote_image(self, quote_id: UUID, file_data: bytes, file_name: str) -> QuoteImageOut:
        await self.quotes.get_by_id(quote_id)
        path = await save_upload(self.file_store, file_data, file_name)

        try:
            async with self.images.transaction() as tx:
                image = await tx.create(QuoteImage(id=uuid4(), quote_id=quote_id, url=path))
                created = QuoteImageOut.model_validate(image)
        except Exception as e:
            logger.error("Quote image insert failed, discarding uploaded file %s: %s", path, e)
            await discard_upload(self.db, self.file_store, path, "quote_image_create")
            if isinstance(e, DomainError):
                raise
            raise InternalError("could not add quote image") from e
        return created

    @service_boundary
    async def fetch_quote_image(self, image_id: UUID) -> QuoteImageOut:
        return QuoteImageOut.model_validate(await self.images.get_by_id(image_id))

    @service_boundary
    async def read_file(self, path: str) -> bytes:
        return await self.file_store.get(path)

    @service_boundary
    async def get_quote_image(self, image_id: UUID) -> tuple[QuoteImageOut, bytes]:
        image = await self.fetch_quote_image(image_id)
        return image, await self.read_file(image.url)

    @service_boundary
    async def list_quote_images(self, quote_id: Optional[UUID] = None, skip: int = 1, limit: int = 0) -> list[QuoteImageOut]:
        images = await self.images.list(quote_id=quote_id, skip=skip, limit=limit)
        return [QuoteImageOut.model_validate(image) for image in images]

    @service_boundary
    async def delete_quote_image(self, image_id: UUID) -> QuoteImageOut:
        image = QuoteImageOut.model_validate(await self.images.get_by_id(image_id))
        try:
            async with self.images.transaction() as tx:
                await self.file_store.delete(image.url)
                await tx.delete(image_id)
        except Exception as e:
            logger.error("Quote image %s delete failed: %s", image_id, e)
            raise InternalError("could not delete quote image") from e
        return image


class CachedQuoteService:
    """Read-through cache over ``QuoteService``.

    Keys: ``quote:<id>``, ``quoteImages:<quote id>``, ``quoteImage:<id>``,
    ``quotes:<filter hash>``.
    """

    def __init__(self, inner: QuoteService, cache: ServiceCache):
        self.inner = inner
        self.cache = cache

    async def create_quote(self, *args, **kwargs) -> QuoteOut:
        quote = await self.inner.create_quote(*args, **kwargs)
        await self.cache.store(generate_cache_key("quote", quote.id), quote, QuoteOut)
        await self.cache.invalidate(prefixes=("quotes", "quoteImages"))
        return quote

    async def fetch_quote(self, quote_id: UUID) -> QuoteOut:
        key = generate_cache_key("quote", quote_id)
        quote = await self.cache.fetch(key, QuoteOut)
        if quote is None:
            quote = await self.inner.fetch_quote(quote_id)
            await self.cache.store(key, quote, QuoteOut)
        return quote

    async def get_quote(self, quote_id: UUID) -> tuple[QuoteOut, list[QuoteImageOut]]:
        quote = await self.fetch_quote(quote_id)

        images_key = generate_cache_key("quoteImages", quote_id)
        images = await self.cache.fetch(images_key, list[QuoteImageOut])
        if images is None:
            images = await self.inner.list_quote_images(quote_id)
            await self.cache.store(images_key, images, list[QuoteImageOut])
        return quote, images

    async def list_quotes(self, filter: QuoteFilter) -> list[QuoteOut]:
        key = generate_cache_key("quotes", generate_cache_key_params(filter))
        quotes = await self.cache.fetch(key, list[QuoteOut])
        if quotes is None:
            quotes = await self.inner.list_quotes(filter)
            await self.cache.store(key, quotes, list[QuoteOut])
        return quotes

    async def update_quote(self, quote_id: UUID, changes: QuoteUpdate) -> QuoteOut:
        quote = await self.inner.update_quote(quote_id, changes)
        await self._refresh(quote)
        return quote

    async def change_quote_state(self, quote_id: UUID, state: str) -> QuoteOut:
        quote = await self.inner.change_quote_state(quote_id, state)
        await self._refresh(quote)
        return quote

    async def _refresh(self, quote: QuoteOut) -> None:
        key = generate_cache_key("quote", quote.id)
        await self.cache.invalidate(keys=(key,), prefixes=("quotes", "quoteImages"))
        await self.cache.store(key, quote, QuoteOut)

    async def delete_quote(self, quote_id: UUID) -> None:
        await self.inner.delete_quote(quote_id)
        await self.cache.invalidate(
            keys=(generate_cache_key("quote", quote_id),),
            prefixes=("quotes", "quoteImages", "quoteImage"),
        )

    async def add_quote_image(self, quote_id: UUID, file_data: bytes, file_name: str) -> QuoteImageOut:
        image = await self.inner.add_quote_image(quote_id, file_data, file_name)
        await self.cache.store(generate_cache_key("quoteImage", image.id), image, QuoteImageOut)
        await self.cache.invalidate(prefixes=("quoteImages",))
        return image

    async def get_quote_image(self, image_id: UUID) -> tuple[QuoteImageOut, bytes]:
        key = generate_cache_key("quoteImage", image_id)
        image = await self.cache.fetch(key, QuoteImageOut)
        if image is None:
            image = await self.inner.fetch_quote_image(image_id)
            await self.cache.store(key, image, QuoteImageOut)
        return image, await self.inner.read_file(image.url)

    async def list_quote_images(self, quote_id: Optional[UUID] = None, skip: int = 1, limit: int = 0) -> list[QuoteImageOut]:
        params = {"quote_id": str(quote_id) if quote_id else None, "skip": skip, "limit": limit}
        key = generate_cache_key("quoteImages", generate_cache_key_params(params))
        images = await self.cache.fetch(key, list[QuoteImageOut])
        if images is None:
            images = await self.inner.list_quote_images(quote_id, skip, limit)
            await self.cache.store(key, images, list[QuoteImageOut])
        return images

    async def delete_quote_image(self, image_id: UUID) -> QuoteImageOut:
        image = await self.inner.delete_quote_image(image_id)
        await self.cache.invalidate(
            keys=(generate_cache_key("quoteImage", image_id),),
            prefixes=("quoteImages",),
        )
        return image
