from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from tracker.config import settings
from tracker.services.session import Session, SessionState


class GateState(str, Enum):
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    redirect_to: Optional[str] = None
    replace: bool = False

    @property
    def render(self) -> bool:
        return self.redirect_to is None and self.state is not GateState.RESOLVING


def gate_state(session_state: SessionState) -> GateState:
    if session_state.resolving:
        return GateState.RESOLVING
    if session_state.user is None:
        return GateState.UNAUTHENTICATED
    return GateState.AUTHENTICATED


class AccessGate:
    """Guards the dashboard; sends signed-out sessions to the sign-in page."""

    def __init__(
        self,
        session: Session,
        sign_in_path: str = settings.SIGN_IN_PATH,
        on_redirect: Optional[Callable[[GateDecision], None]] = None,
    ) -> None:
        self.session = session
        self.sign_in_path = sign_in_path
        self.on_redirect = on_redirect
        self.state = GateState.RESOLVING
        self._unsubscribe = session.subscribe(self._on_session)

    def _decide(self, state: GateState) -> GateDecision:
        if state is GateState.UNAUTHENTICATED:
            return GateDecision(state=state, redirect_to=self.sign_in_path, replace=True)
        return GateDecision(state=state)

    def _on_session(self, session_state: SessionState) -> None:
        previous, self.state = self.state, gate_state(session_state)
        if self.state is GateState.UNAUTHENTICATED and previous is not GateState.UNAUTHENTICATED:
            if self.on_redirect is not None:
                self.on_redirect(self._decide(self.state))

    def decision(self) -> GateDecision:
        return self._decide(self.state)

    def close(self) -> None:
        self._unsubscribe()


def public_surface_decision(session_state: SessionState, home_path: str = "/") -> GateDecision:
    """Sign-in page rule: an authenticated session goes back to the dashboard."""
    state = gate_state(session_state)
    if state is GateState.AUTHENTICATED:
        return GateDecision(state=state, redirect_to=home_path)
    return GateDecision(state=state)
