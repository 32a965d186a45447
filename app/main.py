# app/main.py
import logging

from fastapi import FastAPI, Request

from app.api.chat import router as chat_router
from app.api.dashboards import router as dashboards_router
from app.api.discounts import router as discounts_router
from app.api.events import router as events_router
from app.api.orders import router as orders_router
from app.core.config import settings
from app.models.database import init_db

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=f"{settings.business_name} Backend")

# ── Initialize database on startup ───────────────────────────────────────────
# Creates tables if they don't exist yet.
@app.on_event("startup")
async def startup_event():
    logger.info("🚀 %s starting up...", settings.business_name)
    init_db()
    logger.info("🧺 Record store ready.")

# ── Register routes ───────────────────────────────────────────────────────────
app.include_router(orders_router)
app.include_router(chat_router)
app.include_router(dashboards_router)
app.include_router(discounts_router)
app.include_router(events_router)

# ── Request logger middleware ─────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.debug("%s %s", request.method, request.url.path)
    response = await call_next(request)
    return response

@app.get("/")
async def root():
    return {"status": "online", "message": f"{settings.business_name} backend is running"}
