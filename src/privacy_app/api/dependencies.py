"""Request-scoped dependencies for the API routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from ..db.supabase import require_supabase_client
from ..errors import MissingConfiguration
from ..services.container import ServiceContainer
from ..services.session import SessionAccessor, SupabaseSessionAccessor


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise MissingConfiguration(
            "Supabase is not configured. Set PRIVACY_SUPABASE_URL and PRIVACY_SUPABASE_KEY."
        )
    return services


def get_session(authorization: Optional[str] = Header(default=None)) -> SessionAccessor:
    token: Optional[str] = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return SupabaseSessionAccessor(require_supabase_client(), token)
