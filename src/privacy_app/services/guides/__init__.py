"""Guide completion services."""

from .completion import (
    CompensatingGuideToggle,
    GuideCompletionSet,
    GuideToggleResult,
    RpcGuideToggle,
    build_toggle_transaction,
    toggled,
)

__all__ = [
    "CompensatingGuideToggle",
    "GuideCompletionSet",
    "GuideToggleResult",
    "RpcGuideToggle",
    "build_toggle_transaction",
    "toggled",
]
