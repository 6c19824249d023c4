import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .api.health import router as health_router
from .api.keys import router as keys_router
from .api.responses import install_exception_handlers
from .api.sites import router as sites_router
from .config import API_PREFIX, API_VERSION, get_environment
from .db import init_db
from .logging_config import setup_logging
from .middleware import TracingMiddleware

# Configure logging at import time
setup_logging()

logger = logging.getLogger("siteapi")


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info("Site API starting up", extra={
        "version": API_VERSION,
        "environment": get_environment(),
        "component": "api"
    })
    await init_db()
    try:
        yield
    finally:
        logger.info("Site API shutting down", extra={"component": "api"})


app = FastAPI(title="Site Builder API", version=API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TracingMiddleware)


class ApiVersionHeaderMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = "v1"
        return response


app.add_middleware(ApiVersionHeaderMiddleware)

install_exception_handlers(app)

app.include_router(health_router)
app.include_router(sites_router, prefix=API_PREFIX)
app.include_router(keys_router, prefix=API_PREFIX)
