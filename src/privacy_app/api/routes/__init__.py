"""Route group exports."""

from . import checklist, deindexing, guides, health, score

__all__ = ["checklist", "deindexing", "guides", "health", "score"]
