"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check Supabase configuration and that the onboarding tables answer."""
    from ...db.supabase import get_supabase_client
    from ...persistence.records import CHECKLIST_PROGRESS_TABLE, CUSTOMERS_TABLE, INCOMING_URLS_TABLE

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set PRIVACY_SUPABASE_URL and PRIVACY_SUPABASE_KEY environment variables.",
        }

    tables: dict[str, bool] = {}
    errors: dict[str, str] = {}
    for table in (CUSTOMERS_TABLE, CHECKLIST_PROGRESS_TABLE, INCOMING_URLS_TABLE):
        try:
            supabase.table(table).select("*", count="exact").limit(1).execute()
            tables[table] = True
        except Exception as exc:
            tables[table] = False
            errors[table] = str(exc)

    return {
        "configured": True,
        "connected": all(tables.values()),
        "tables": tables,
        "errors": errors,
    }


@router.get("/health/guides", status_code=status.HTTP_200_OK)
def check_guides(request: Request) -> dict:
    """Report how many guides the catalog holds."""
    services = getattr(request.app.state, "services", None)
    if services is not None:
        guides = services.guide_loader()
    else:
        from ...data.guides_repository import load_guides

        guides = load_guides()
    return {"guides": len(guides), "empty": not guides}
