# gene_annotator/db/repositories/clone_repo.py
from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Optional

from supabase import Client

from gene_annotator.db.supabase_client import (
    DBNotFoundError,
    ensure_list,
    ensure_one,
    execute,
    get_supabase_client,
)


class CloneRepo:
    """
    internal_fields rows. Every query is scoped to user_id: a clone is only
    visible to, and mutable by, its owner.
    """

    TABLE = "internal_fields"

    DEFAULT_SELECT = "*"

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def sb(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def list_for_user(
        self,
        user_id: str,
        *,
        gene_ids: Optional[Iterable[str]] = None,
        select: str = DEFAULT_SELECT,
    ) -> List[Dict[str, Any]]:
        q = self.sb.table(self.TABLE).select(select).eq("user_id", user_id)
        if gene_ids is not None:
            ids = [str(g) for g in gene_ids]
            if not ids:
                return []
            q = q.in_("gene_id", ids)
        q = q.order("created_at", desc=False)
        res = execute(q)
        return ensure_list(res.data)

    def list_by_gene(self, gene_id: str, user_id: str, *, select: str = DEFAULT_SELECT) -> List[Dict[str, Any]]:
        return self.list_for_user(user_id, gene_ids=[gene_id], select=select)

    def get_clone(self, clone_id: str, user_id: str, *, select: str = DEFAULT_SELECT) -> Dict[str, Any]:
        q = self.sb.table(self.TABLE).select(select).eq("id", clone_id).eq("user_id", user_id).limit(1)
        res = execute(q)
        rows = ensure_list(res.data)
        return ensure_one(rows, not_found_message=f"clone not found: {clone_id}")

    def create(self, *, gene_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        clone_id = str(uuid.uuid4())
        payload: Dict[str, Any] = {**fields, "id": clone_id, "gene_id": gene_id, "user_id": user_id}
        execute(self.sb.table(self.TABLE).insert(payload))
        return self.get_clone(clone_id, user_id)

    def update(self, clone_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge `fields` into the row; ownership and gene linkage are never rewritten."""
        fields = {k: v for k, v in fields.items() if k not in ("id", "gene_id", "user_id", "created_at")}
        if not fields:
            return self.get_clone(clone_id, user_id)

        q = self.sb.table(self.TABLE).update(fields).eq("id", clone_id).eq("user_id", user_id)
        res = execute(q)
        if not ensure_list(res.data):
            raise DBNotFoundError(f"clone not found: {clone_id}")
        return self.get_clone(clone_id, user_id)

    def delete(self, clone_id: str, user_id: str) -> None:
        q = self.sb.table(self.TABLE).delete().eq("id", clone_id).eq("user_id", user_id)
        res = execute(q)
        if not ensure_list(res.data):
            raise DBNotFoundError(f"clone not found: {clone_id}")
