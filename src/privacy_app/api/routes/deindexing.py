"""Deindexing status endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...schemas.onboarding import (
    IncomingUrlModel,
    IncomingUrlsResponse,
    StatusRegressionModel,
    StepViewModel,
)
from ...services.container import ServiceContainer
from ...services.session import SessionAccessor, require_user_id
from ..dependencies import get_services, get_session

router = APIRouter(prefix="/deindexing", tags=["deindexing"])


@router.get("/incoming-urls", response_model=IncomingUrlsResponse, status_code=status.HTTP_200_OK)
def list_incoming_urls(
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> IncomingUrlsResponse:
    views = services.incoming_urls.list_views(require_user_id(session))
    terminal = len(services.tracker.steps) - 1
    items = [
        IncomingUrlModel(
            id=view.url.id,
            url=view.url.url,
            status=view.url.status,
            created_at=view.url.created_at,
            current_step_index=view.current_step_index,
            steps=[
                StepViewModel(
                    index=step.index,
                    step=step.step,
                    active=step.active,
                    current=step.current,
                    label=step.label,
                    timestamp=step.timestamp,
                )
                for step in view.steps
            ],
            regressions=[
                StatusRegressionModel(
                    position=regression.position,
                    from_step=regression.from_step,
                    to_step=regression.to_step,
                    at=regression.at,
                )
                for regression in view.regressions
            ],
        )
        for view in views
    ]
    return IncomingUrlsResponse(
        items=items,
        total=len(items),
        approved=sum(1 for view in views if view.current_step_index == terminal),
    )
