from fastapi import APIRouter
from secdash.api.v1 import imports, ingestion_logs, rss

api_router = APIRouter()

api_router.include_router(imports.router, tags=["imports"])
api_router.include_router(ingestion_logs.router, prefix="/ingestion-logs", tags=["ingestion-logs"])
api_router.include_router(rss.router, prefix="/rss", tags=["rss"])
