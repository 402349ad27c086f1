from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from content_scheduler.config import settings
from content_scheduler.database import Base
import content_scheduler.models  # noqa: F401

config = context.config

# an explicit sqlalchemy.url (tests, `-x` tooling) wins; otherwise DATABASE_URL from settings
database_url = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=database_url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(database_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
