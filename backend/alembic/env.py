"""Migration runner; the URL always comes from application settings, never alembic.ini."""
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

import ledgr.models  # noqa: F401  registers every table on Base.metadata
from ledgr.core.settings import settings
from ledgr.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _configure(**kwargs) -> None:
    url = settings.database_url
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _configure(url=settings.database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    engine = create_engine(settings.database_url, poolclass=NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
