from fastapi import APIRouter

from match_alerts.api.alerts import router as alerts_router

api_router = APIRouter()
api_router.include_router(alerts_router)
