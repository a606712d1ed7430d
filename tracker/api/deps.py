from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tracker.errors import AuthRequiredError
from tracker.models.store import User
from tracker.services.auth import auth_service
from tracker.services.record_store import RecordStoreAdapter, record_store
from tracker.services.session import Session

bearer_scheme = HTTPBearer(auto_error=False)


def get_access_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_session(access_token: Optional[str] = Depends(get_access_token)) -> Session:
    """A session resolved from the request's bearer token."""
    session = Session(auth_service)
    session.restore(access_token)
    return session


def require_user(session: Session = Depends(get_session)) -> User:
    if session.user is None:
        raise AuthRequiredError("Not authenticated")
    return session.user


def get_record_store() -> RecordStoreAdapter:
    return record_store
