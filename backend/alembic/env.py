from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context
from storefront.core.settings import settings
from storefront.db import Base
from storefront.models import cart, order, product, role, tenant, user  # noqa: F401

BACKEND_DIR = Path(__file__).resolve().parents[1]

config = context.config


def _normalize_sqlite_url(url: str) -> str:
    """Relative sqlite paths resolve against backend/, like the app does."""
    if not url.startswith("sqlite:///") or url.startswith("sqlite:////"):
        return url
    path = url[len("sqlite:///"):]
    if path.startswith("./"):
        path = (BACKEND_DIR / path[2:]).resolve().as_posix()
    return "sqlite:////" + path.lstrip("/") if path.startswith("/") else url


def database_url() -> str:
    # `alembic -x db_url=...` wins over DATABASE_URL
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    return _normalize_sqlite_url(override or settings.DATABASE_URL)


config.set_main_option("sqlalchemy.url", database_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # sqlite cannot ALTER constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
