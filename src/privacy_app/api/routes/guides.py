"""Guide catalog and completion endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from ...schemas.onboarding import GuideModel, GuideToggleResponse
from ...services.container import ServiceContainer
from ...services.session import SessionAccessor, require_user_id
from ..dependencies import get_services, get_session

router = APIRouter(prefix="/guides", tags=["guides"])


@router.get("", response_model=List[GuideModel], status_code=status.HTTP_200_OK)
def list_guides(
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> List[GuideModel]:
    completed = services.guides.completed(require_user_id(session))
    return [
        GuideModel(
            site_id=guide.site_id,
            site_name=guide.site_name,
            url=guide.url,
            steps=list(guide.steps),
            completed=guide.site_id in completed,
        )
        for guide in services.guide_loader()
    ]


@router.post("/{guide_id}/toggle", response_model=GuideToggleResponse, status_code=status.HTTP_200_OK)
def toggle_guide(
    guide_id: str = Path(..., min_length=1, description="Guide (site) identifier"),
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> GuideToggleResponse:
    try:
        result = services.guides.toggle(session, guide_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return GuideToggleResponse(
        guide_id=result.guide_id,
        completed=result.completed,
        completed_guides=sorted(result.completed_guides),
    )
