# gateway/main.py

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from gateway.core.config import settings
from gateway.core.database import db
from gateway.core.cache import cache

# Routers
from gateway.modules.services.router import router as services_router
from gateway.modules.groups.router import router as groups_router
from gateway.modules.auth.router import router as gateway_router
from gateway.modules.auth.router import api_router as me_router

logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup/shutdown lifecycle.
    - Connect DB pool
    - Connect Redis
    """
    logger.info("Starting %s...", settings.APP_NAME)
    await db.connect()
    await cache.connect()
    logger.info("Database and cache connections established.")
    yield
    logger.info("Shutting down %s...", settings.APP_NAME)
    await db.disconnect()
    await cache.close()
    logger.info("Database and cache connections closed.")


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


# -------------------------------------------------------------------
# HEALTH CHECK
# -------------------------------------------------------------------
@app.get("/health", tags=["System"])
async def health_check():
    """
    Liveness probe used by infra / load balancers. Verifies DB and Redis.
    """
    db_health = await db.ping()
    cache_health = await cache.ping()

    status_code = 200 if (db_health and cache_health) else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok" if status_code == 200 else "unhealthy",
            "components": {
                "database": "connected" if db_health else "disconnected",
                "redis": "connected" if cache_health else "disconnected",
            },
        },
    )


# -------------------------------------------------------------------
# API ROUTERS (versioned)
# -------------------------------------------------------------------
API_PREFIX = "/api/v1"

app.include_router(services_router, prefix=API_PREFIX)
app.include_router(groups_router, prefix=API_PREFIX)
app.include_router(me_router, prefix=API_PREFIX)

# -------------------------------------------------------------------
# GATEWAY PAGES (NOT under /api/v1)
# -------------------------------------------------------------------
# Must stay last: it owns the catch-all "/{service_id}" route.
app.include_router(gateway_router)
