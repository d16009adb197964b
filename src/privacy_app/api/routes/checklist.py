"""Onboarding checklist endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.domain import ChecklistProgress
from ...schemas.onboarding import (
    ChecklistNotificationModel,
    ChecklistNotificationsResponse,
    ChecklistProgressResponse,
    PasswordUpdateRequest,
)
from ...services.checklist import ChecklistProgressAggregator, unread_count
from ...services.container import ServiceContainer
from ...services.session import SessionAccessor, require_user_id
from ..dependencies import get_services, get_session

router = APIRouter(prefix="/checklist", tags=["checklist"])


def _to_response(progress: ChecklistProgress | None) -> ChecklistProgressResponse:
    aggregator = ChecklistProgressAggregator(progress)
    return ChecklistProgressResponse(
        steps=aggregator.steps(),
        completed_steps=aggregator.completed_steps(),
        total_steps=aggregator.total_steps,
        progress=aggregator.overall_progress(),
        percentage=aggregator.percentage(),
        next_step=aggregator.next_step(),
    )


@router.get("/progress", response_model=ChecklistProgressResponse, status_code=status.HTTP_200_OK)
def get_checklist_progress(
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> ChecklistProgressResponse:
    return _to_response(services.checklist.get_progress(require_user_id(session)))


@router.get("/notifications", response_model=ChecklistNotificationsResponse, status_code=status.HTTP_200_OK)
def get_checklist_notifications(
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> ChecklistNotificationsResponse:
    notifications = services.checklist.notifications(require_user_id(session))
    return ChecklistNotificationsResponse(
        items=[
            ChecklistNotificationModel(
                id=item.id,
                step=item.step,
                title_key=item.title_key,
                completed=item.completed,
                read=item.read,
                created_at=item.created_at,
            )
            for item in notifications
        ],
        unread_count=unread_count(notifications),
    )


@router.post("/password", response_model=ChecklistProgressResponse, status_code=status.HTTP_200_OK)
def update_password(
    payload: PasswordUpdateRequest,
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> ChecklistProgressResponse:
    progress = services.checklist.update_password(session, payload.new_password, payload.current_password)
    return _to_response(progress)
