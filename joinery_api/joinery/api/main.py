"""
FastAPI application for the joinery stock service.

REST endpoints live under /api/v1; the notification feed is a WebSocket at
/ws/notifications. Responses use the ApiResponse envelope, errors the
ErrorResponse envelope (see joinery.api.errors).
"""
from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from joinery.api.errors import install_error_handlers
from joinery.api.routes.audit import router as audit_router
from joinery.api.routes.items import router as items_router
from joinery.api.routes.materials import router as materials_router
from joinery.api.routes.notifications import router as notifications_router
from joinery.api.routes.purchase_orders import router as purchase_orders_router
from joinery.api.routes.reservations import router as reservations_router
from joinery.api.routes.stock import router as stock_router
from joinery.api.routes.suppliers import router as suppliers_router
from joinery.core.logging import configure_logging, correlation_id_var
from joinery.core.settings import get_app_settings
from joinery.db.run_migrations import main as run_alembic
from joinery.schemas.common import MessageResponse

configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=[
        {"name": "Health", "description": "Liveness probe."},
        {"name": "Items", "description": "Inventory items and their stock history."},
        {"name": "Stock", "description": "Stock transactions and stock tallies."},
        {"name": "Reservations", "description": "Stock held for materials-to-order lines."},
        {"name": "Materials To Order", "description": "Material requests per project lot."},
        {"name": "Procurement", "description": "Suppliers, purchase orders and goods receipt."},
        {"name": "Audit", "description": "Audit trail of mutations."},
        {"name": "WebSocket", "description": "Notification feed connection details."},
    ],
)

# Browsers reject credentials with a wildcard origin.
allow_credentials = settings.CORS_ALLOW_CREDENTIALS and settings.cors_origins != ["*"]
if settings.CORS_ALLOW_CREDENTIALS and not allow_credentials:
    logger.warning("CORS credentials disabled because CORS_ORIGINS is '*'")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag the request (logs, error bodies, X-Correlation-ID header) with a correlation id."""
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    request.state.correlation_id = corr
    token = correlation_id_var.set(corr)
    try:
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers["X-Correlation-ID"] = corr
    return response


@app.on_event("startup")
async def apply_migrations() -> None:
    if not settings.RUN_MIGRATIONS_ON_STARTUP:
        return
    logger.info("Applying migrations (upgrade head)")
    try:
        # Alembic's env.py starts its own event loop.
        await asyncio.to_thread(run_alembic, ["upgrade", "head"])
    except Exception:
        logger.exception("Startup migrations failed; continuing without them")


api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get("/health", response_model=MessageResponse, summary="Health Check", tags=["Health"])
def health_check() -> MessageResponse:
    """Liveness probe; does not touch the database."""
    return MessageResponse(message="Healthy")


for router in (
    items_router,
    suppliers_router,
    stock_router,
    reservations_router,
    materials_router,
    purchase_orders_router,
    audit_router,
):
    api_v1.include_router(router)

app.include_router(api_v1)
app.include_router(notifications_router)
