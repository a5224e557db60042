# gene_annotator/api/routes/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from gene_annotator.api.deps import get_access_token, get_auth
from gene_annotator.core.errors import AuthenticationRequiredError
from gene_annotator.schemas.auth import AuthStatus, SessionResponse
from gene_annotator.services.auth import AuthProvider, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=AuthStatus)
def whoami(auth: AuthProvider = Depends(get_auth)) -> AuthStatus:
    user_id = auth.current_user_id()
    return AuthStatus(user_id=user_id, signed_in=user_id is not None)


@router.post("/anonymous", response_model=SessionResponse)
def sign_in_anonymously() -> SessionResponse:
    return SessionResponse(**AuthService.sign_in_anonymously())


@router.post("/sign-out", status_code=204)
def sign_out(token: Optional[str] = Depends(get_access_token)) -> Response:
    if not token:
        raise AuthenticationRequiredError("Not signed in")
    AuthService.sign_out(token)
    return Response(status_code=204)
