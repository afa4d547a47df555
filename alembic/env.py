import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from alembic import context

from blightstone.settings import app_settings

# Register every table on SQLModel.metadata
from blightstone.auth.models import AccountDB, AuthSessionDB  # noqa: F401
from blightstone.invites.models import InvitationDB  # noqa: F401
from blightstone.projects.models import (  # noqa: F401
    CompetitorDB,
    CreativeDB,
    CustomerAvatarDB,
    ProjectDB,
    ProjectMemberDB,
)
from blightstone.tasks.models import TaskDB  # noqa: F401
from blightstone.users.models import ProfileDB  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def get_url() -> str:
    return os.getenv("DATABASE_URL") or app_settings.database_url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
