# gene_annotator/db/supabase_client.py
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from gene_annotator.core.config import get_settings

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


# -----------------------
# Exceptions
# -----------------------
class DBError(Exception):
    """DB layer base exception."""


class DBQueryError(DBError):
    """Supabase/PostgREST query failed."""


class DBNotFoundError(DBError):
    """Requested resource not found."""


class DBConflictError(DBError):
    """Unique constraint / conflict error."""


T = TypeVar("T")


@dataclass(frozen=True)
class DBResult:
    data: Any
    count: Optional[int] = None


# -----------------------
# Client (singleton)
# -----------------------
@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Create Supabase client using service role key.
    - Cached for process lifetime
    - Row ownership is enforced by the repositories, not by RLS
    """
    s = get_settings()
    return create_client(s.supabase_url, s.supabase_service_key)


def create_public_client() -> Client:
    """Fresh client on the public key, for auth flows that hold a session."""
    s = get_settings()
    return create_client(s.supabase_url, s.public_auth_key)


# -----------------------
# Helpers
# -----------------------
def _get_data(resp: Any) -> Any:
    if hasattr(resp, "data"):
        return resp.data
    return getattr(resp, "get", lambda *_: None)("data")


def _get_count(resp: Any) -> Optional[int]:
    return getattr(resp, "count", None)


def execute(query: Any) -> DBResult:
    """
    Execute a built postgrest query safely and normalize response.
    """
    try:
        resp = query.execute()
        return DBResult(data=_get_data(resp), count=_get_count(resp))
    except PostgrestAPIError as e:
        if getattr(e, "code", None) == _UNIQUE_VIOLATION:
            raise DBConflictError(str(e)) from e
        raise DBQueryError(str(e)) from e
    except DBError:
        raise
    except Exception as e:
        raise DBQueryError(str(e)) from e


def ensure_list(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    # .single() yields a dict
    if isinstance(data, dict):
        return [data]
    raise DBQueryError(f"Unexpected response data type: {type(data)}")


def ensure_one(rows: Sequence[T], *, not_found_message: str) -> T:
    if not rows:
        raise DBNotFoundError(not_found_message)
    if len(rows) > 1:
        raise DBQueryError(f"Expected 1 row, got {len(rows)}. {not_found_message}")
    return rows[0]


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
