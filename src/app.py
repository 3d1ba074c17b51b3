"""Fuelstream FastAPI application.

Web server for the fuel delivery core. Commands are processed synchronously
per request inside the delivery domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from delivery.domain import delivery
from delivery.utils.logging import bind_request, configure_logging

configure_logging()
delivery.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Fuelstream API",
    description="Fuel delivery orders, payments, dispatch and notifications",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the delivery domain context and bind request logging context."""
    bind_request(request.url.path, request.method)
    with delivery.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from delivery.api.errors import register_delivery_error_handlers  # noqa: E402
from delivery.api.routes import routers  # noqa: E402

for router in routers:
    app.include_router(router)

register_exception_handlers(app)
register_delivery_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    from delivery.services import build_services

    upstreams = build_services().outbound.health()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": delivery.name,
            "upstreams": upstreams,
        }
    )
