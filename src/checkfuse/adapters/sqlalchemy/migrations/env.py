"""Alembic environment for the fusion store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from alembic import context
from sqlalchemy import create_engine, pool

from checkfuse.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from checkfuse.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config

start_mappers()

# sqlite cannot ALTER most columns in place, batch mode rebuilds the table instead
MIGRATION_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _run(**configure_options: Any) -> None:
    context.configure(**MIGRATION_OPTIONS, **configure_options)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection) -> None:
    _run(connection=connection)


def main() -> None:
    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    if context.is_offline_mode():
        _run(url=url, literal_binds=True)
        return

    # upgrade_head(engine=...) hands over an open connection
    shared = config.attributes.get("connection")
    if shared is not None:
        _migrate_connection(shared)
        return

    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _migrate_connection(connection)
    finally:
        engine.dispose()


main()
