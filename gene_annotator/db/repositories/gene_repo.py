# gene_annotator/db/repositories/gene_repo.py
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from supabase import Client

from gene_annotator.db.supabase_client import (
    DBConflictError,
    ensure_list,
    ensure_one,
    escape_like,
    execute,
    get_supabase_client,
)


class GeneRepo:
    TABLE = "genes"

    DEFAULT_SELECT = (
        "id,symbol,entrez_id,name,description,map_location,uniprot_id,ensembl_id,"
        "type_of_gene,alias,summary,created_at,updated_at"
    )

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def sb(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def list_genes(self, *, select: str = DEFAULT_SELECT) -> List[Dict[str, Any]]:
        q = self.sb.table(self.TABLE).select(select).order("created_at", desc=True)
        res = execute(q)
        return ensure_list(res.data)

    def get_gene_by_id(self, gene_id: str, *, select: str = DEFAULT_SELECT) -> Dict[str, Any]:
        q = self.sb.table(self.TABLE).select(select).eq("id", gene_id).limit(1)
        res = execute(q)
        rows = ensure_list(res.data)
        return ensure_one(rows, not_found_message=f"gene not found: {gene_id}")

    def find_by_symbol(self, symbol: str, *, select: str = DEFAULT_SELECT) -> Optional[Dict[str, Any]]:
        """Case-insensitive exact match on symbol; None if absent."""
        q = self.sb.table(self.TABLE).select(select).ilike("symbol", escape_like(symbol.strip())).limit(1)
        res = execute(q)
        rows = ensure_list(res.data)
        return rows[0] if rows else None

    def search_by_symbol(
        self,
        fragment: str,
        *,
        limit: int = 10,
        select: str = DEFAULT_SELECT,
    ) -> List[Dict[str, Any]]:
        pattern = f"%{escape_like(fragment.strip())}%"
        q = self.sb.table(self.TABLE).select(select).ilike("symbol", pattern).limit(max(limit, 1))
        res = execute(q)
        return ensure_list(res.data)

    def upsert_by_symbol(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update the gene whose symbol matches case-insensitively, else insert.

        The unique index on lower(symbol) turns a concurrent duplicate insert
        into DBConflictError; that race is settled by updating the winner.
        """
        symbol = str(payload["symbol"]).strip()
        fields = {k: v for k, v in payload.items() if k not in ("id", "created_at", "updated_at")}
        fields["symbol"] = symbol

        existing = self.find_by_symbol(symbol, select="id")
        if existing:
            return self._update(str(existing["id"]), fields)

        gene_id = str(uuid.uuid4())
        try:
            execute(self.sb.table(self.TABLE).insert({"id": gene_id, **fields}))
        except DBConflictError:
            winner = self.find_by_symbol(symbol, select="id")
            if not winner:
                raise
            return self._update(str(winner["id"]), fields)
        return self.get_gene_by_id(gene_id)

    def _update(self, gene_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        # keep the stored spelling of the symbol
        fields = {k: v for k, v in fields.items() if k != "symbol"}
        if fields:
            execute(self.sb.table(self.TABLE).update(fields).eq("id", gene_id))
        return self.get_gene_by_id(gene_id)
