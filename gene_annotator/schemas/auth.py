# gene_annotator/schemas/auth.py
from __future__ import annotations

from typing import Optional

from gene_annotator.schemas.common import SchemaBase


class AuthStatus(SchemaBase):
    user_id: Optional[str] = None
    signed_in: bool


class SessionResponse(SchemaBase):
    user_id: str
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
