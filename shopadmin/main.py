from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopadmin.api.dependencies import get_session_service
from shopadmin.api.health import router as health_router
from shopadmin.api.routes_product_drafts import router as product_drafts_router
from shopadmin.config import settings
from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.main", "MAIN")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # scheduler for dropping abandoned edit sessions
    scheduler = BackgroundScheduler()

    def expire_job():
        try:
            get_session_service().expire_idle()
        except Exception as e:
            log.error(f"session sweep failed: {e}")

    scheduler.add_job(
        expire_job, "interval", seconds=settings.SESSION_SWEEP_SECONDS, id="expire_sessions"
    )
    scheduler.start()
    log.info(f"catalog backend: {settings.CATALOG_BACKEND} ({settings.API_BASE_URL})")

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Your Local Shop - Product Admin", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(product_drafts_router, tags=["product-drafts"])
