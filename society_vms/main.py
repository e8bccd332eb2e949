"""
FastAPI application entry point.
Includes security middleware, error handlers for the visitor error taxonomy, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from society_vms.routers import flats, residents, visitor_requests, admin, changes, health
from society_vms.database import SessionLocal, create_tables
from society_vms.services.flat_service import seed_flats
from society_vms.services.retention_service import run_retention_schedule
from society_vms.config import settings
from society_vms.utils.exceptions import VisitorManagementError
from society_vms.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="Society Visitor Management API",
    description="Guard intake, resident approvals and admin reporting for one residential society.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (guard tablet, resident phones and admin dashboard) ─────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the deployed client origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key check.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(VisitorManagementError)
async def visitor_error_handler(request: Request, exc: VisitorManagementError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.kind} — {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(flats.router,            prefix="/api/v1", tags=["Flats"])
app.include_router(residents.router,        prefix="/api/v1", tags=["Residents"])
app.include_router(visitor_requests.router, prefix="/api/v1", tags=["Visitor Requests"])
app.include_router(admin.router,            prefix="/api/v1", tags=["Admin"])
app.include_router(changes.router,          prefix="/api/v1", tags=["Change Feed"])
app.include_router(health.router,           prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Visitor management backend starting up...")
    create_tables()
    db = SessionLocal()
    try:
        seed_flats(db)
    finally:
        db.close()
    logger.info("✅ Database tables ready")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.RETENTION_SWEEP_INTERVAL_SECONDS > 0:
        app.state.retention_task = asyncio.create_task(
            run_retention_schedule(settings.RETENTION_SWEEP_INTERVAL_SECONDS), name="retention-sweep"
        )


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Visitor management backend shutting down...")
    task = getattr(app.state, "retention_task", None)
    if task:
        task.cancel()
