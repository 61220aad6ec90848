import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI

from forest.config import settings
from forest.services.gateway import create_gateway

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize Sentry
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one relay client shared by every request
    app.state.gateway = create_gateway(settings)
    app.state.break_ends = {}

    yield

    # Shutdown
    await app.state.gateway.aclose()


app = FastAPI(
    title="Forest Onchain Client",
    version="0.1.0",
    lifespan=lifespan,
)

from forest.middleware.error_handler import register_error_handlers  # noqa: E402

register_error_handlers(app)

# Routers
from forest.routers.admin import router as admin_router  # noqa: E402
from forest.routers.goals import router as goals_router  # noqa: E402
from forest.routers.sessions import router as sessions_router  # noqa: E402

app.include_router(goals_router)
app.include_router(sessions_router)
app.include_router(admin_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
