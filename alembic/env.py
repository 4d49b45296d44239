from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from pustak_api.core.settings import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql",
    "sqlite+aiosqlite": "sqlite",
}


def get_metadata():
    from pustak_api import models  # noqa: F401,WPS433 (registers tables)
    from pustak_api.db.base import Base  # noqa: WPS433 (late import)

    return Base.metadata


def sync_database_url(database_url: str) -> str:
    """Swap the async driver in the runtime URL for its blocking counterpart."""
    for async_prefix, sync_prefix in _SYNC_DRIVERS.items():
        if database_url.startswith(async_prefix):
            return sync_prefix + database_url[len(async_prefix):]
    return database_url


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    database_url = sync_database_url(settings.database_url)
    context.configure(
        url=database_url,
        target_metadata=get_metadata(),
        literal_binds=True,
        render_as_batch=_is_sqlite(database_url),
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    database_url = sync_database_url(settings.database_url)
    connectable = create_engine(database_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=get_metadata(),
            # SQLite cannot ALTER most constraints in place.
            render_as_batch=_is_sqlite(database_url),
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
