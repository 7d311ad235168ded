import importlib
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.db_utils import TemporaryDatabase, run_migrations


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.wms.core.config as config
    import app.wms.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def _client_for_revision(tmp_path: Path, revision: str):
    database = TemporaryDatabase.from_environment(tmp_path)
    run_migrations(database.url, revision)
    app, session = _setup_app(database.url)
    with TestClient(app) as client:
        yield client
    session.engine.dispose()
    database.drop()


@pytest.fixture()
def client(tmp_path: Path):
    yield from _client_for_revision(tmp_path, "head")


@pytest.fixture()
def legacy_client(tmp_path: Path):
    """Client against a schema that predates `inbound_receipt_lines.location_id`."""
    yield from _client_for_revision(tmp_path, "0002_inbound_receiving")


@pytest.fixture()
def db_session(request):
    fixture_name = "legacy_client" if "legacy_client" in request.fixturenames else "client"
    request.getfixturevalue(fixture_name)
    from app.wms.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
