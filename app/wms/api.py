from fastapi import APIRouter

from app.wms.core.config import settings
from app.wms.routers.health import router as health_router
from app.wms.routers.inbound import router as inbound_router
from app.wms.routers.metrics import router as metrics_router
from app.wms.routers.putaway import router as putaway_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(inbound_router, tags=["inbound"])
api_router.include_router(putaway_router, tags=["putaway"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
