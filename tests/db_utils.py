from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url


@dataclass
class TemporaryDatabase:
    """A throwaway database: a SQLite file, or a fresh PostgreSQL database."""

    url: str
    admin_url: str | None = None
    name: str | None = None

    @classmethod
    def from_environment(cls, tmp_path: Path) -> "TemporaryDatabase":
        base_url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL", "")
        if base_url.startswith("postgres"):
            return cls.create_postgres(base_url)
        return cls(url=f"sqlite+pysqlite:///{tmp_path / 'test.db'}")

    @classmethod
    def create_postgres(cls, base_url: str) -> "TemporaryDatabase":
        url = make_url(base_url)
        name = f"wms_test_{uuid.uuid4().hex}"
        admin_url = url.set(database="postgres")
        engine = create_engine(admin_url, isolation_level="AUTOCOMMIT", future=True)
        with engine.connect() as conn:
            conn.execute(text(f'CREATE DATABASE "{name}"'))
        engine.dispose()
        return cls(
            url=url.set(database=name).render_as_string(hide_password=False),
            admin_url=admin_url.render_as_string(hide_password=False),
            name=name,
        )

    def drop(self) -> None:
        if self.admin_url is None:
            return
        engine = create_engine(self.admin_url, isolation_level="AUTOCOMMIT", future=True)
        with engine.connect() as conn:
            conn.execute(
                text("SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = :name"),
                {"name": self.name},
            )
            conn.execute(text(f'DROP DATABASE IF EXISTS "{self.name}"'))
        engine.dispose()


def run_migrations(database_url: str, revision: str = "head"):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, revision)
