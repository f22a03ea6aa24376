"""Alembic env.py: async PostgreSQL migrations for the booking API."""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

from app.core.config import load_settings
from app.core.database import Base
from app.models.user import User  # noqa: F401 ensure models are registered
from app.models.type_of_service import TypeOfService  # noqa: F401
from app.models.quote import Quote, QuoteImage  # noqa: F401
from app.models.availability_slot import AvailabilitySlot  # noqa: F401
from app.models.appointment import Appointment  # noqa: F401
from app.models.payment_proof import PaymentProof  # noqa: F401
from app.models.orphaned_blob import OrphanedBlob  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
settings = load_settings()


def run_migrations_offline() -> None:
    url = settings.DATABASE_URL
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = create_async_engine(settings.DATABASE_URL, poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
