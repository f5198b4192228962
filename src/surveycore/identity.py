"""
Identity provider contract.

The core only needs the current user's id: to stamp creator_id and
user_id, and to compare identities for creator-only actions.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from surveycore.errors import NotAuthenticated


class IdentityProvider(ABC):

    @abstractmethod
    def get_current_user(self) -> Optional[str]:
        """Return the signed-in user's id, or None."""

    def require_user(self) -> str:
        """
        Raises:
            NotAuthenticated: If nobody is signed in
        """
        user_id = self.get_current_user()
        if not user_id:
            raise NotAuthenticated()
        return user_id


class StaticIdentity(IdentityProvider):
    """
    Identity held in memory; switch users with sign_in / sign_out.

    Listeners registered with on_change are called with the new user id
    (or None) whenever the session changes.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._listeners: List[Callable[[Optional[str]], None]] = []

    def get_current_user(self) -> Optional[str]:
        return self._user_id

    def on_change(self, listener: Callable[[Optional[str]], None]) -> None:
        self._listeners.append(listener)

    def sign_in(self, user_id: str) -> None:
        self._set(user_id)

    def sign_out(self) -> None:
        self._set(None)

    def _set(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for listener in list(self._listeners):
            listener(user_id)
