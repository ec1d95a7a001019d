"""
Session handling for Keeper Client.

The session only holds the bearer token returned by login/register.
It lives in memory for the lifetime of the process.
"""

from typing import Optional
from datetime import datetime
from dataclasses import dataclass, field


@dataclass
class UserSession:
    """Represents an authenticated user session."""
    token: str
    login: str = ""
    created_at: datetime = field(default_factory=datetime.now)


class SessionHolder:
    """Holds the current session token."""

    def __init__(self):
        self._session: Optional[UserSession] = None

    @property
    def is_authenticated(self) -> bool:
        """Check if user is currently authenticated."""
        return self._session is not None

    @property
    def current_session(self) -> Optional[UserSession]:
        """Get the current session."""
        return self._session

    @property
    def token(self) -> str:
        """Current token, or empty string when not logged in."""
        return self._session.token if self._session else ""

    def set_token(self, token: str, login: str = "") -> None:
        """Replace the current session. An empty token clears it."""
        self._session = UserSession(token=token, login=login) if token else None
