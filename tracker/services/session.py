"""Session context shared by the gate and the dashboard.

A ``Session`` starts out *resolving* and settles exactly once, either from a
stored access token (``restore``) or from the first sign-in/sign-up. After
that it publishes every sign-in and sign-out to its subscribers.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from tracker.errors import AuthError
from tracker.models.store import User
from tracker.services.auth import AuthService, auth_service
from tracker.utils.logger import get_logger

logger = get_logger(__name__)


class SessionPhase(str, Enum):
    RESOLVING = "resolving"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class SessionState:
    phase: SessionPhase
    user: Optional[User] = None
    error: Optional[str] = None

    @property
    def resolving(self) -> bool:
        return self.phase is SessionPhase.RESOLVING

    @property
    def signed_in(self) -> bool:
        return self.phase is SessionPhase.RESOLVED and self.user is not None


SessionListener = Callable[[SessionState], None]


class Session:
    def __init__(self, auth: AuthService = auth_service) -> None:
        self.auth = auth
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self._state = SessionState(phase=SessionPhase.RESOLVING)
        self._listeners: Dict[str, SessionListener] = {}

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        token = str(uuid.uuid4())
        self._listeners[token] = listener
        listener(self._state)

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def _publish(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners.values()):
            listener(state)

    def restore(self, access_token: Optional[str]) -> SessionState:
        if not self._state.resolving:
            return self._state
        user = self.auth.resolve(access_token)
        self.access_token = access_token if user else None
        self._publish(SessionState(phase=SessionPhase.RESOLVED, user=user))
        return self._state

    def sign_in(self, email: str, password: str) -> SessionState:
        return self._authenticate(self.auth.sign_in, email, password)

    def sign_up(self, email: str, password: str) -> SessionState:
        return self._authenticate(self.auth.sign_up, email, password)

    def _authenticate(self, call, email: str, password: str) -> SessionState:
        try:
            tokens = call(email, password)
        except AuthError as exc:
            self._publish(SessionState(phase=SessionPhase.RESOLVED, user=self.user, error=exc.message))
            raise
        self.access_token = tokens.access_token
        self.refresh_token = tokens.refresh_token
        user = self.auth.resolve(tokens.access_token)
        logger.info("Session signed in as %s", user.id if user else None)
        self._publish(SessionState(phase=SessionPhase.RESOLVED, user=user))
        return self._state

    def sign_out(self) -> SessionState:
        if self.access_token:
            self.auth.sign_out(self.access_token)
        self.access_token = None
        self.refresh_token = None
        self._publish(SessionState(phase=SessionPhase.RESOLVED, user=None))
        return self._state
