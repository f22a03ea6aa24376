"""Application context: everything a request handler needs, built once at startup."""

import logging
import sys
from dataclasses import dataclass

from app.core.config import Settings
from app.core.database import Database
from app.services.blob_storage import BlobStorageService, FileStore
from app.services.cache import Cache, RedisCache, ServiceCache
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``app`` logger hierarchy once."""
    app_logger = logging.getLogger("app")
    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        app_logger.addHandler(handler)
    app_logger.setLevel(level.upper())
    return app_logger


@dataclass
class AppContext:
    settings: Settings
    logger: logging.Logger
    database: Database
    cache: Cache
    file_store: FileStore
    notifier: EmailService

    def service_cache(self) -> ServiceCache:
        return ServiceCache(self.cache, ttl=self.settings.CACHE_TTL_SECONDS)

    async def close(self) -> None:
        close_cache = getattr(self.cache, "close", None)
        if close_cache is not None:
            await close_cache()
        await self.database.dispose()
        self.logger.info("Application context closed")


def build_context(settings: Settings) -> AppContext:
    app_logger = configure_logging(settings.LOG_LEVEL)
    context = AppContext(
        settings=settings,
        logger=app_logger,
        database=Database(settings.DATABASE_URL, echo=settings.DB_ECHO),
        cache=RedisCache(settings.REDIS_URL),
        file_store=BlobStorageService(
            settings.AZURE_BLOB_CONNECTION_STRING,
            settings.AZURE_BLOB_CONTAINER,
            settings.AZURE_STORAGE_ACCOUNT,
        ),
        notifier=EmailService(
            settings.SENDGRID_API_KEY,
            settings.SENDGRID_FROM_EMAIL,
            settings.SENDGRID_FROM_NAME,
        ),
    )
    app_logger.info("Application context built (env=%s)", settings.APP_ENV)
    return context
