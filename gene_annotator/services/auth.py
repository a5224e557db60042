# gene_annotator/services/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from gene_annotator.core.errors import AuthenticationRequiredError, ExternalServiceError
from gene_annotator.db.supabase_client import create_public_client, get_supabase_client

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    def current_user_id(self) -> Optional[str]:
        ...


@dataclass(frozen=True)
class StaticAuthProvider:
    user_id: Optional[str] = None

    def current_user_id(self) -> Optional[str]:
        return self.user_id


class SupabaseAuthProvider:
    """
    Resolves the caller from the bearer token the browser got from
    Supabase Auth. Invalid or expired tokens count as anonymous.
    """

    def __init__(self, access_token: Optional[str]):
        self._token = access_token
        self._resolved = False
        self._user_id: Optional[str] = None

    def current_user_id(self) -> Optional[str]:
        if self._resolved:
            return self._user_id
        self._resolved = True
        if not self._token:
            return None
        try:
            resp = get_supabase_client().auth.get_user(self._token)
        except Exception:
            logger.warning("Rejected access token", exc_info=True)
            return None
        user = getattr(resp, "user", None)
        self._user_id = str(user.id) if user is not None and getattr(user, "id", None) else None
        return self._user_id


def require_user(auth: AuthProvider) -> str:
    user_id = auth.current_user_id()
    if not user_id:
        raise AuthenticationRequiredError()
    return user_id


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthService:
    """Anonymous sign-in and sign-out, delegated to Supabase Auth."""

    @staticmethod
    def sign_in_anonymously() -> Dict[str, Any]:
        sb = create_public_client()
        try:
            resp = sb.auth.sign_in_anonymously()
        except Exception as e:
            logger.exception("Anonymous sign-in failed")
            raise ExternalServiceError(f"Anonymous sign-in failed: {e}") from e

        session = getattr(resp, "session", None)
        user = getattr(resp, "user", None)
        if session is None or user is None:
            raise ExternalServiceError("Anonymous sign-in returned no session")
        return {
            "user_id": str(user.id),
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_in": session.expires_in,
        }

    @staticmethod
    def sign_out(access_token: str) -> None:
        try:
            get_supabase_client().auth.admin.sign_out(access_token)
        except Exception as e:
            logger.exception("Sign-out failed")
            raise ExternalServiceError(f"Sign-out failed: {e}") from e
