"""Onboarding API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ScoreBreakdownModel(BaseModel):
    guides: int
    address: int
    urls: int


class ScoreWeightsModel(BaseModel):
    guides: float
    address: float
    urls: float


class PrivacyScoreResponse(BaseModel):
    total: int = Field(..., ge=0, le=100)
    individual: ScoreBreakdownModel
    weights: ScoreWeightsModel


class GuideModel(BaseModel):
    site_id: str
    site_name: str
    url: Optional[str] = None
    steps: List[str]
    completed: bool


class GuideToggleResponse(BaseModel):
    guide_id: str
    completed: bool
    completed_guides: List[str]


class ChecklistProgressResponse(BaseModel):
    steps: List[bool]
    completed_steps: int
    total_steps: int
    progress: float
    percentage: int
    next_step: Optional[int] = None


class StepViewModel(BaseModel):
    index: int
    step: str
    active: bool
    current: bool
    label: Optional[str] = None
    timestamp: Optional[datetime] = None


class StatusRegressionModel(BaseModel):
    position: int
    from_step: str
    to_step: str
    at: datetime


class IncomingUrlModel(BaseModel):
    id: str
    url: str
    status: str
    created_at: Optional[datetime] = None
    current_step_index: int
    steps: List[StepViewModel]
    regressions: List[StatusRegressionModel] = []


class IncomingUrlsResponse(BaseModel):
    items: List[IncomingUrlModel]
    total: int
    approved: int


class ChecklistNotificationModel(BaseModel):
    id: str
    step: int
    title_key: str
    completed: bool
    read: bool
    created_at: Optional[datetime] = None


class ChecklistNotificationsResponse(BaseModel):
    items: List[ChecklistNotificationModel]
    unread_count: int


class PasswordUpdateRequest(BaseModel):
    new_password: str = Field(..., min_length=1)
    current_password: Optional[str] = Field(
        default=None,
        description="When given, the new password must differ from it.",
    )


class ErrorResponse(BaseModel):
    detail: str
    retryable: bool = False
    divergent: bool = False
    indeterminate: bool = False
    violations: List[str] = Field(default_factory=list)
