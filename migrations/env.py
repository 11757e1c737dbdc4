"""Alembic ortamı: push_subscriptions şeması, URL uygulamanın DATABASE_URL'inden gelir."""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlmodel import SQLModel

import ownly_push.models  # noqa: F401  (tabloları metadata'ya kaydeder)
from ownly_push.core.database import DATABASE_URL

config = context.config
config.set_main_option("sqlalchemy.url", DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=SQLModel.metadata, compare_type=True, **kwargs)


if context.is_offline_mode():
    # Sadece SQL üretir
    _configure(url=DATABASE_URL, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    connectable = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
