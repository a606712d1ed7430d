from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse

from tracker.api.deps import get_access_token, get_session
from tracker.errors import AuthError
from tracker.schemas.auth import RefreshRequest, SignInRequest, SignInSurfaceResponse, SignUpRequest, TokenResponse
from tracker.services.auth import auth_service
from tracker.services.gate import public_surface_decision
from tracker.services.session import Session

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("", response_model=SignInSurfaceResponse)
def sign_in_surface(session: Session = Depends(get_session)):
    decision = public_surface_decision(session.state)
    if decision.redirect_to:
        return RedirectResponse(decision.redirect_to, status_code=status.HTTP_303_SEE_OTHER)
    return SignInSurfaceResponse()


@router.post("/sign-up", response_model=TokenResponse)
def sign_up(payload: SignUpRequest):
    try:
        tokens = auth_service.sign_up(payload.email, payload.password)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    return tokens


@router.post("/sign-in", response_model=TokenResponse)
def sign_in(payload: SignInRequest):
    tokens = auth_service.sign_in(payload.email, payload.password)
    return tokens


@router.post("/refresh", response_model=TokenResponse)
def refresh(payload: RefreshRequest):
    tokens = auth_service.refresh(payload.refresh_token)
    return tokens


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(access_token: Optional[str] = Depends(get_access_token)):
    if access_token:
        auth_service.sign_out(access_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
