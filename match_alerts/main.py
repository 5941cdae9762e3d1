from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from match_alerts.api.router import api_router
from match_alerts.config import get_settings
from match_alerts.db.database import create_db_engine, get_session_factory, init_db
from match_alerts.log import configure_logging
from match_alerts.scheduler.runner import AlertScheduler

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting up...")
    engine = create_db_engine()
    init_db(engine)

    # 啟動排程器
    alert_scheduler = AlertScheduler.from_config(get_session_factory(engine))
    alert_scheduler.start()
    app.state.alert_scheduler = alert_scheduler

    yield

    # 關閉排程器
    alert_scheduler.stop()
    engine.dispose()
    logger.info("Shutting down...")


# Disable interactive docs in production
docs_url = None if settings.is_production else "/docs"
redoc_url = None if settings.is_production else "/redoc"

app = FastAPI(
    title="Match Alerts API",
    description="Cricket match start/end notification scheduler",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)

# Configure CORS origins
default_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
if settings.cors_origins:
    cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
else:
    cors_origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/admin/status")
async def admin_status(request: Request, x_admin_key: str = Header(None)):
    # Require admin key in production
    if settings.is_production:
        if not settings.admin_api_key:
            raise HTTPException(status_code=503, detail="Admin API not configured")
        if x_admin_key != settings.admin_api_key:
            raise HTTPException(status_code=401, detail="Invalid admin key")

    alert_scheduler = getattr(request.app.state, "alert_scheduler", None)
    return {
        "scheduler_running": alert_scheduler is not None and alert_scheduler.running,
        "jobs": alert_scheduler.get_jobs() if alert_scheduler else [],
    }
