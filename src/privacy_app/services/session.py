"""Session accessors resolving the current customer id."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from supabase import Client

from ..errors import NoSession

logger = logging.getLogger(__name__)


class SessionAccessor(Protocol):
    def current_user_id(self) -> Optional[str]:
        """Return the authenticated user id, or None when there is no session."""
        ...


class StaticSession:
    """Session whose user id is already known (e.g. resolved by middleware)."""

    def __init__(self, user_id: Optional[str]) -> None:
        self.user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self.user_id


class SupabaseSessionAccessor:
    """Resolve a Supabase access token to the user it was issued for."""

    def __init__(self, client: Client, access_token: Optional[str]) -> None:
        self.client = client
        self.access_token = access_token
        self._resolved = False
        self._user_id: Optional[str] = None

    def current_user_id(self) -> Optional[str]:
        if self._resolved:
            return self._user_id
        self._resolved = True
        if not self.access_token:
            return None
        try:
            response = self.client.auth.get_user(self.access_token)
        except Exception as exc:
            logger.warning(f"Access token rejected: {exc}")
            return None
        user = getattr(response, "user", None)
        self._user_id = str(user.id) if user and getattr(user, "id", None) else None
        return self._user_id


def require_user_id(session: SessionAccessor) -> str:
    user_id = session.current_user_id()
    if not user_id:
        raise NoSession()
    return user_id
