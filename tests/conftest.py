from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest

# settings are read at import time of gene_annotator.main
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")

from gene_annotator.core.errors import ExternalServiceError  # noqa: E402
from gene_annotator.db.supabase_client import DBNotFoundError, DBQueryError  # noqa: E402
from gene_annotator.services.auth import StaticAuthProvider  # noqa: E402
from gene_annotator.services.reconciliation import GeneCache, GeneResolver  # noqa: E402

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeGeneRepo:
    """In-memory stand-in for GeneRepo (genes table)."""

    def __init__(self, rows: Iterable[Dict[str, Any]] = ()):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.upserts: List[Dict[str, Any]] = []
        self.list_calls = 0
        self._tick = 0
        for r in rows:
            self.add(**r)

    def _now(self) -> datetime:
        self._tick += 1
        return _EPOCH + timedelta(minutes=self._tick)

    def add(self, symbol: str, **fields: Any) -> Dict[str, Any]:
        now = self._now()
        row = {"id": fields.pop("id", str(uuid.uuid4())), "symbol": symbol, "alias": [], "created_at": now, "updated_at": now}
        row.update(fields)
        self.rows[row["id"]] = row
        return row

    def list_genes(self, *, select: str = "*") -> List[Dict[str, Any]]:
        self.list_calls += 1
        return sorted((dict(r) for r in self.rows.values()), key=lambda r: r["created_at"], reverse=True)

    def get_gene_by_id(self, gene_id: str, *, select: str = "*") -> Dict[str, Any]:
        if gene_id not in self.rows:
            raise DBNotFoundError(f"gene not found: {gene_id}")
        return dict(self.rows[gene_id])

    def find_by_symbol(self, symbol: str, *, select: str = "*") -> Optional[Dict[str, Any]]:
        key = symbol.strip().lower()
        for r in self.rows.values():
            if r["symbol"].lower() == key:
                return dict(r)
        return None

    def search_by_symbol(self, fragment: str, *, limit: int = 10, select: str = "*") -> List[Dict[str, Any]]:
        key = fragment.strip().lower()
        return [dict(r) for r in self.rows.values() if key in r["symbol"].lower()][:limit]

    def upsert_by_symbol(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.upserts.append(dict(payload))
        existing = self.find_by_symbol(payload["symbol"])
        if existing:
            row = self.rows[existing["id"]]
            row.update({k: v for k, v in payload.items() if k != "symbol"})
            row["updated_at"] = self._now()
            return dict(row)
        fields = {k: v for k, v in payload.items() if k != "symbol"}
        return dict(self.add(payload["symbol"].strip(), **fields))


class FakeCloneRepo:
    """In-memory stand-in for CloneRepo (internal_fields table)."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fail_on_create: Optional[str] = None
        self.by_gene_calls: List[tuple] = []
        self._tick = 0

    def _now(self) -> datetime:
        self._tick += 1
        return _EPOCH + timedelta(days=1, minutes=self._tick)

    def list_for_user(self, user_id: str, *, gene_ids=None, select: str = "*") -> List[Dict[str, Any]]:
        ids = None if gene_ids is None else set(gene_ids)
        return [
            dict(r)
            for r in self.rows.values()
            if r["user_id"] == user_id and (ids is None or r["gene_id"] in ids)
        ]

    def list_by_gene(self, gene_id: str, user_id: str, *, select: str = "*") -> List[Dict[str, Any]]:
        self.by_gene_calls.append((gene_id, user_id))
        return self.list_for_user(user_id, gene_ids=[gene_id])

    def get_clone(self, clone_id: str, user_id: str, *, select: str = "*") -> Dict[str, Any]:
        row = self.rows.get(clone_id)
        if row is None or row["user_id"] != user_id:
            raise DBNotFoundError(f"clone not found: {clone_id}")
        return dict(row)

    def create(self, *, gene_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail_on_create and fields.get("clone") == self.fail_on_create:
            raise DBQueryError("insert failed")
        now = self._now()
        row = {**fields, "id": str(uuid.uuid4()), "gene_id": gene_id, "user_id": user_id, "created_at": now, "updated_at": now}
        self.rows[row["id"]] = row
        return dict(row)

    def update(self, clone_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self.get_clone(clone_id, user_id)
        row = self.rows[clone_id]
        row.update({k: v for k, v in fields.items() if k not in ("id", "gene_id", "user_id")})
        row["updated_at"] = self._now()
        return dict(row)

    def delete(self, clone_id: str, user_id: str) -> None:
        self.get_clone(clone_id, user_id)
        del self.rows[clone_id]


class FakeGateway:
    """GeneLookupGateway returning canned MyGene payloads."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.responses = responses or {}
        self.error = error
        self.calls: List[str] = []

    def lookup(self, symbol: str) -> Dict[str, Any]:
        self.calls.append(symbol)
        if self.error is not None:
            raise self.error
        return self.responses.get(symbol, {"took": 1, "total": 0, "max_score": None, "hits": []})


def mygene_hit(symbol: str = "TP53", **overrides: Any) -> Dict[str, Any]:
    hit = {
        "_id": "7157",
        "symbol": symbol,
        "name": "tumor protein p53",
        "summary": "This gene encodes a tumor suppressor protein.",
        "entrezgene": 7157,
        "uniprot": {"Swiss-Prot": "P04637", "TrEMBL": ["A0A087X1Q1", "K7PPA8"]},
        "ensembl": {"gene": "ENSG00000141510"},
        "genomic_pos": {"chr": "17", "start": 7661779, "end": 7687538, "strand": -1},
        "type_of_gene": "protein-coding",
        "alias": ["BCC7", "LFS1", "P53"],
    }
    hit.update(overrides)
    return hit


@pytest.fixture
def gene_repo() -> FakeGeneRepo:
    return FakeGeneRepo()


@pytest.fixture
def clone_repo() -> FakeCloneRepo:
    return FakeCloneRepo()


@pytest.fixture
def cache(gene_repo) -> GeneCache:
    return GeneCache(gene_repo)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def user_auth() -> StaticAuthProvider:
    return StaticAuthProvider("user-1")


@pytest.fixture
def anon_auth() -> StaticAuthProvider:
    return StaticAuthProvider(None)


@pytest.fixture
def resolver(cache, gene_repo, clone_repo, gateway, user_auth) -> GeneResolver:
    return GeneResolver(cache=cache, gene_repo=gene_repo, clone_repo=clone_repo, gateway=gateway, auth=user_auth)


@pytest.fixture
def failing_gateway() -> FakeGateway:
    return FakeGateway(error=ExternalServiceError("MyGene.info API error: 503"))
