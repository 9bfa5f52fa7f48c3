"""Vendor MDM API: FastAPI application factory."""


import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import vendor_mdm.domain  # noqa: F401  (register ORM models on Base.metadata)
from vendor_mdm.core.clock import Clock, utcnow
from vendor_mdm.core.config import Settings, settings as default_settings
from vendor_mdm.core.exceptions import register_exception_handlers
from vendor_mdm.core.log_config import configure_logging
from vendor_mdm.db.base import Base, create_engine_for, create_session_factory
from vendor_mdm.middleware.request_log import RequestLogMiddleware
from vendor_mdm.schemas.common import HealthResponse
from vendor_mdm.services.metadata import RuleSetRegistry
from vendor_mdm.stores.bus import MessageBus
from vendor_mdm.stores.documents import DocumentStore, build_document_store
from vendor_mdm.stores.queue import QueueBackend, build_queue_backend

# v1 routers
from vendor_mdm.routers.v1.change_requests import router as change_requests_router
from vendor_mdm.routers.v1.invitations import router as invitations_router
from vendor_mdm.routers.v1.metadata import router as metadata_router
from vendor_mdm.routers.v1.vendor_applications import router as vendor_applications_router
from vendor_mdm.routers.v1.vendors import router as vendors_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    if state.settings.auto_create_schema:
        async with state.db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    await state.document_store.initialize()
    await state.queue_backend.initialize()
    await state.rule_registry.warm(state.document_store)
    logger.info("%s started (%s)", state.settings.app_name, state.settings.app_env)
    try:
        yield
    finally:
        await state.queue_backend.close()
        await state.document_store.close()
        await state.db_engine.dispose()


def create_app(
    settings: Settings | None = None,
    *,
    document_store: DocumentStore | None = None,
    queue_backend: QueueBackend | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # --- App-scoped stores (see vendor_mdm.core.dependencies) ---
    app.state.settings = settings
    app.state.db_engine = create_engine_for(settings.database_url)
    app.state.session_factory = create_session_factory(app.state.db_engine)
    app.state.document_store = document_store or build_document_store(
        settings.document_store_backend, settings.document_store_url
    )
    app.state.queue_backend = queue_backend or build_queue_backend(
        settings.queue_backend, settings.queue_url
    )
    app.state.message_bus = MessageBus(app.state.queue_backend, settings.sap_environment_code)
    app.state.rule_registry = RuleSetRegistry()
    app.state.clock = clock

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Request logging middleware ---
    app.add_middleware(RequestLogMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- v1 API routes (/api/v1/*) ---
    app.include_router(change_requests_router, prefix="/api/v1")
    app.include_router(invitations_router, prefix="/api/v1")
    app.include_router(vendor_applications_router, prefix="/api/v1")
    app.include_router(vendors_router, prefix="/api/v1")
    app.include_router(metadata_router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(app=settings.app_name, env=settings.app_env)

    return app


app = create_app()
