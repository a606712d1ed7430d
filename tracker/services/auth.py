from datetime import timedelta
from typing import Optional

from tracker.config import settings
from tracker.errors import AuthError
from tracker.models.store import InMemoryStore, TokenPair, User, store
from tracker.utils.logger import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_TTL = timedelta(minutes=settings.ACCESS_TOKEN_TTL_MIN)
REFRESH_TOKEN_TTL = timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS)


class AuthService:
    def __init__(self, backend: InMemoryStore = store) -> None:
        self.backend = backend

    def sign_up(self, email: str, password: str) -> TokenPair:
        try:
            user = self.backend.create_user(email=email, password=password)
        except ValueError as exc:
            logger.info("Sign-up rejected for %s: %s", email, exc)
            raise AuthError(str(exc)) from exc
        logger.info("Created user %s", user.id)
        return self.backend.issue_tokens(user.id, ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL)

    def sign_in(self, email: str, password: str) -> TokenPair:
        user = self.backend.verify_user(email, password)
        if not user:
            logger.info("Sign-in failed for %s", email)
            raise AuthError("Invalid credentials")
        return self.backend.issue_tokens(user.id, ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL)

    def sign_out(self, access_token: str) -> None:
        self.backend.revoke(access_token)

    def refresh(self, refresh_token: str) -> TokenPair:
        token_pair = self.backend.refresh(refresh_token, ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL)
        if not token_pair:
            raise AuthError("Invalid or expired refresh token")
        return token_pair

    def resolve(self, access_token: Optional[str]) -> Optional[User]:
        if not access_token:
            return None
        return self.backend.user_for_token(access_token)


auth_service = AuthService()
