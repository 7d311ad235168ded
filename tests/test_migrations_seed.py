from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.orm import sessionmaker

from app.wms.db.models import Client, Location, Organization, Product, Warehouse
from app.wms.db.seed import run_seed
from tests.db_utils import run_migrations


def test_migrations_apply(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    run_migrations(database_url)

    inspector = inspect(create_engine(database_url, future=True))
    tables = set(inspector.get_table_names())

    assert {
        "organizations",
        "warehouses",
        "clients",
        "products",
        "locations",
        "audit_events",
        "inbound_plans",
        "inbound_plan_lines",
        "inbound_receipts",
        "inbound_photo_slots",
        "inbound_photos",
        "inbound_receipt_lines",
        "inbound_events",
        "inventory_ledger",
        "inventory_balances",
        "putaway_tasks",
    } <= tables
    columns = {column["name"] for column in inspector.get_columns("inbound_receipt_lines")}
    assert "location_id" in columns
    indexes = {index["name"]: index for index in inspector.get_indexes("inbound_receipt_lines")}
    assert indexes["uq_inbound_receipt_lines_receipt_plan_line"]["unique"]
    assert indexes["uq_inbound_receipt_lines_receipt_plan_line"]["column_names"] == ["receipt_id", "plan_line_id"]


def test_location_column_can_be_rolled_back(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'downgrade.db'}"
    run_migrations(database_url)
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)

    command.downgrade(config, "0002_inbound_receiving")

    inspector = inspect(create_engine(database_url, future=True))
    assert "putaway_tasks" not in set(inspector.get_table_names())
    columns = {column["name"] for column in inspector.get_columns("inbound_receipt_lines")}
    assert "location_id" not in columns
    indexes = {index["name"]: index for index in inspector.get_indexes("inbound_receipt_lines")}
    assert not indexes["ix_inbound_receipt_lines_receipt_plan_line"]["unique"]


def test_seed_is_idempotent(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'seed.db'}"
    run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    SessionLocal = sessionmaker(bind=engine, future=True)
    models = (Organization, Warehouse, Client, Location, Product)

    with SessionLocal() as db:
        run_seed(db)
        counts = [db.scalar(select(func.count()).select_from(model)) for model in models]

        run_seed(db)
        counts_after = [db.scalar(select(func.count()).select_from(model)) for model in models]

        assert counts == [1, 1, 1, 4, 2]
        assert counts_after == counts
        assert db.scalar(select(func.count()).select_from(Warehouse).where(Warehouse.code == "MAIN")) == 1
