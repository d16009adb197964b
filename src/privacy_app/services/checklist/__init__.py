"""Checklist service helpers."""

from .password import PasswordUpdater, SupabasePasswordUpdater, password_violations
from .progress import (
    TOTAL_STEPS,
    ChecklistNotification,
    ChecklistProgressAggregator,
    ChecklistService,
    checklist_notifications,
    completed_steps,
    is_step_complete,
    next_step,
    overall_progress,
    progress_percentage,
    unread_count,
)

__all__ = [
    "TOTAL_STEPS",
    "ChecklistNotification",
    "ChecklistProgressAggregator",
    "ChecklistService",
    "PasswordUpdater",
    "SupabasePasswordUpdater",
    "checklist_notifications",
    "completed_steps",
    "is_step_complete",
    "next_step",
    "overall_progress",
    "password_violations",
    "progress_percentage",
    "unread_count",
]
