"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.errors import register_error_handlers
from .api.routes import checklist, deindexing, guides, health, score
from .config import settings
from .db.supabase import get_supabase_client
from .persistence.records import SupabaseRecordStore
from .services.checklist import SupabasePasswordUpdater
from .services.container import ServiceContainer, build_services


def _default_services() -> Optional[ServiceContainer]:
    client = get_supabase_client()
    if client is None:
        logging.warning("Supabase not configured - onboarding endpoints will answer 503")
        return None
    return build_services(
        SupabaseRecordStore(client, settings),
        settings,
        passwords=SupabasePasswordUpdater(client),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    services: Optional[ServiceContainer] = app.state.services
    if services is not None:
        services.close()


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.services = services if services is not None else _default_services()
    register_error_handlers(app)

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(score.router, prefix=settings.api_prefix)
    app.include_router(guides.router, prefix=settings.api_prefix)
    app.include_router(checklist.router, prefix=settings.api_prefix)
    app.include_router(deindexing.router, prefix=settings.api_prefix)
    return app


app = create_app()
