from argparse import Namespace
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

BACKEND_DIR = Path(__file__).resolve().parents[1]

TABLES = {"tenants", "roles", "users", "products", "carts", "cart_items", "orders", "order_items"}


def _config(url: str) -> Config:
    cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    cfg.cmd_opts = Namespace(x=[f"db_url={url}"])
    return cfg


def test_upgrade_and_downgrade_on_a_fresh_database(tmp_path):
    url = f"sqlite:///{(tmp_path / 'migrate.db').as_posix()}"
    cfg = _config(url)

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert TABLES <= set(inspector.get_table_names())
        product_columns = {c["name"] for c in inspector.get_columns("products")}
        assert {"tenant_id", "slug", "price_cents", "stock", "category", "tags"} <= product_columns

        command.downgrade(cfg, "base")
        assert TABLES.isdisjoint(inspect(engine).get_table_names())
    finally:
        engine.dispose()
