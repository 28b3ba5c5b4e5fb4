"""FastAPI application entry point with FastMCP mounted."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting Roster Reconciler (notes merge policy: %s)", settings.RECONCILE_NOTES_POLICY
    )
    yield
    from app.database import engine

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Roster Reconciler",
    description="Re-attaches student-owned records after a bulk roster re-import",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST API router
from app.api.v1.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")

# FastMCP ASGI sub-app
from app.mcp.server import mcp  # noqa: E402

mcp_app = mcp.http_app(path="/mcp")
app.mount("/mcp", mcp_app)


@app.get("/health")
async def health():
    """Basic liveness probe."""
    return {"status": "ok", "service": "roster-reconciler"}


@app.get("/health/ready")
async def health_ready():
    """Readiness probe with database check."""
    from app.database import engine
    from sqlalchemy import text

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ready", "database": "ok"}
    except Exception as e:
        logger.error("Health ready check failed: %s", e)
        return JSONResponse(
            {"status": "not_ready", "database": "error"},
            status_code=503
        )
