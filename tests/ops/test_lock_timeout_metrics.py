from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.wms.core.errors import setup_exception_handlers
from app.wms.core.metrics import metrics


def test_lock_timeout_increments_metric():
    metrics.reset()
    app = FastAPI()
    setup_exception_handlers(app)

    @app.post("/receipts/confirm")
    def confirm():
        raise OperationalError("SELECT ... FOR UPDATE", {}, Exception("could not obtain lock on row"))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post("/receipts/confirm")

    assert response.status_code == 409
    assert response.json()["code"] == "LOCK_TIMEOUT"
    assert metrics.sample("lock_wait_timeout_total") == 1

    content = metrics.render().content.decode("utf-8")
    assert "lock_wait_timeout_total" in content
