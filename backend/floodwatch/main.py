from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from floodwatch.config import settings
from floodwatch.crud.user_query import seed_admin
from floodwatch.db import SessionLocal, engine
from floodwatch.errors import register_exception_handlers
from floodwatch.models import Base
from floodwatch.routers import drainage, risk, road_bridge, users, wards, weather
from floodwatch.routers import settings as settings_router
from floodwatch.websocket.wards import ward_ws_handler

import logging

# --- Logging Setup ---
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# --- FastAPI App Setup ---
app = FastAPI(title="Flood Risk Monitoring API")

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# --- Database Table Initialization ---
@app.on_event("startup")
def on_startup():
    logger.info("Creating database tables (if not exists)...")
    Base.metadata.create_all(bind=engine)
    if settings.SEED_ADMIN:
        session = SessionLocal()
        try:
            if seed_admin(session, settings.ADMIN_USERNAME, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD):
                logger.info(f"Default admin {settings.ADMIN_USERNAME} created")
        finally:
            session.close()
    logger.info("Startup complete.")


# --- Routes ---
@app.get("/", tags=["Health Check"])
def root() -> dict:
    return {
        "success": True,
        "message": "Flood Risk Monitoring API",
        "endpoints": ["/api/wards", "/api/risk", "/api/weather", "/api/drainage", "/api/road-bridge",
                      "/api/users", "/api/settings", "/ws/wards"],
    }


@app.get("/api/health", tags=["Health Check"])
def health_check() -> dict:
    return {"status": "ok", "message": "FastAPI backend running"}


for module in (wards, risk, weather, drainage, road_bridge, users, settings_router):
    app.include_router(module.router)


@app.websocket("/ws/wards")
async def wards_ws(websocket: WebSocket):
    await ward_ws_handler(websocket)
