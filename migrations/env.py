import logging
from logging.config import fileConfig

from flask import current_app
from sqlalchemy import text

from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
fileConfig(config.config_file_name)
logger = logging.getLogger('alembic.env')


def _normalize_db_url(url: str | None) -> str | None:
    if not url:
        return None
    # SQLAlchemy 2.x prefers postgresql:// over postgres://
    if url.startswith('postgres://'):
        return 'postgresql://' + url[len('postgres://'):]
    return url


def get_engine():
    import os

    preferred_env_url = (
        _normalize_db_url(os.environ.get('ALEMBIC_DATABASE_URL'))
        or _normalize_db_url(os.environ.get('DATABASE_URL'))
    )
    if preferred_env_url:
        from sqlalchemy import create_engine
        return create_engine(preferred_env_url)
    return current_app.extensions['migrate'].db.engine


def get_engine_url():
    return get_engine().url.render_as_string(hide_password=False).replace('%', '%%')


# Register every model on the metadata for autogenerate
from plato import models  # noqa: E402,F401

config.set_main_option('sqlalchemy.url', get_engine_url())
target_db = current_app.extensions['migrate'].db


def get_metadata():
    if hasattr(target_db, 'metadatas'):
        return target_db.metadatas[None]
    return target_db.metadata


def run_migrations_offline():
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url, target_metadata=get_metadata(), literal_binds=True
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode against a live connection."""

    def process_revision_directives(context, revision, directives):
        """Suppress file creation when no changes are detected."""
        if getattr(config.cmd_opts, 'autogenerate', False):
            script = directives[0]
            if script.upgrade_ops.is_empty():
                directives[:] = []
                logger.info('No changes in schema detected.')

    conf_args = current_app.extensions['migrate'].configure_args
    conf_args["transaction_per_migration"] = True
    if conf_args.get("process_revision_directives") is None:
        conf_args["process_revision_directives"] = process_revision_directives

    connectable = get_engine()

    with connectable.connect() as connection:
        # Leftovers from an interrupted SQLite batch migration
        if connection.dialect.name == 'sqlite':
            result = connection.execute(text(
                "SELECT name FROM sqlite_master WHERE type='table' AND name LIKE '_alembic_tmp_%'"
            ))
            temp_tables = [row[0] for row in result.fetchall()]
            for table_name in temp_tables:
                connection.execute(text(f"DROP TABLE IF EXISTS {table_name}"))
                logger.info("Dropped temporary table %s", table_name)
            if temp_tables:
                connection.commit()

        context.configure(
            connection=connection,
            target_metadata=get_metadata(),
            **conf_args
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
