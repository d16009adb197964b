"""Deindexing status services."""

from .service import IncomingUrlService, IncomingUrlView
from .status import StatusLifecycleTracker, StatusRegression, StepView, sort_newest_first

__all__ = [
    "IncomingUrlService",
    "IncomingUrlView",
    "StatusLifecycleTracker",
    "StatusRegression",
    "StepView",
    "sort_newest_first",
]
