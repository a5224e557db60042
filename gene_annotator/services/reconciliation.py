# gene_annotator/services/reconciliation.py
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from gene_annotator.core.errors import ExternalServiceError, NotFoundError
from gene_annotator.db.repositories.clone_repo import CloneRepo
from gene_annotator.db.repositories.gene_repo import GeneRepo
from gene_annotator.schemas.clone import Clone
from gene_annotator.schemas.gene import Gene, GeneRecord
from gene_annotator.services.auth import AuthProvider
from gene_annotator.services.gene_lookup import GeneLookupGateway

logger = logging.getLogger(__name__)


def _norm_symbol(symbol: str) -> str:
    return (symbol or "").strip().lower()


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def map_hit_to_gene_fields(hit: Dict[str, Any], fallback_symbol: str) -> Dict[str, Any]:
    """
    MyGene hit -> genes row payload.

    genomic_pos, ensembl and uniprot["Swiss-Prot"] come back either as a
    single value or as a list when the gene maps to several loci/entries;
    the first entry wins.
    """
    genomic_pos = _first(hit.get("genomic_pos"))
    chrom = genomic_pos.get("chr") if isinstance(genomic_pos, dict) else None

    uniprot = hit.get("uniprot")
    swissprot = _first(uniprot.get("Swiss-Prot")) if isinstance(uniprot, dict) else None

    ensembl = _first(hit.get("ensembl"))
    ensembl_gene = _first(ensembl.get("gene")) if isinstance(ensembl, dict) else None

    alias = hit.get("alias")
    if alias is None:
        aliases: List[str] = []
    elif isinstance(alias, str):
        aliases = [alias]
    else:
        aliases = [str(a) for a in alias]

    summary = _str_or_none(hit.get("summary"))

    return {
        "symbol": _str_or_none(hit.get("symbol")) or fallback_symbol,
        "name": _str_or_none(hit.get("name")),
        "entrez_id": _str_or_none(hit.get("entrezgene")),
        "description": summary,
        "summary": summary,
        "map_location": _str_or_none(chrom),
        "uniprot_id": _str_or_none(swissprot),
        "ensembl_id": _str_or_none(ensembl_gene),
        "type_of_gene": _str_or_none(hit.get("type_of_gene")),
        "alias": aliases,
    }


class GeneCache:
    """
    Process-wide mirror of the genes table.

    Loaded lazily on first read; `refresh()` reloads it from storage and
    `put()` records a gene that was just written.
    """

    def __init__(self, gene_repo: GeneRepo):
        self._repo = gene_repo
        self._lock = threading.RLock()
        self._genes: Dict[str, Gene] = {}
        self._loaded = False

    def refresh(self) -> List[Gene]:
        rows = self._repo.list_genes()
        genes = [Gene.model_validate(r) for r in rows]
        with self._lock:
            self._genes = {g.id: g for g in genes}
            self._loaded = True
        logger.debug("Gene cache refreshed: %d gene(s)", len(genes))
        return genes

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.refresh()

    def all(self) -> List[Gene]:
        self._ensure_loaded()
        with self._lock:
            genes = list(self._genes.values())
        # newest first, as listed by the table view
        genes.sort(key=lambda g: g.created_at.timestamp() if g.created_at else 0.0, reverse=True)
        return genes

    def get(self, gene_id: str) -> Optional[Gene]:
        self._ensure_loaded()
        with self._lock:
            return self._genes.get(gene_id)

    def find_by_symbol(self, symbol: str) -> Optional[Gene]:
        key = _norm_symbol(symbol)
        if not key:
            return None
        self._ensure_loaded()
        with self._lock:
            for g in self._genes.values():
                if g.symbol.lower() == key:
                    return g
        return None

    def put(self, gene: Gene) -> None:
        self._ensure_loaded()
        with self._lock:
            self._genes[gene.id] = gene


class GeneResolver:
    """Local-first, external-fallback lookup of a gene symbol."""

    def __init__(
        self,
        *,
        cache: GeneCache,
        gene_repo: GeneRepo,
        clone_repo: CloneRepo,
        gateway: GeneLookupGateway,
        auth: AuthProvider,
    ):
        self.cache = cache
        self.gene_repo = gene_repo
        self.clone_repo = clone_repo
        self.gateway = gateway
        self.auth = auth

    def resolve(self, symbol: str) -> GeneRecord:
        query = (symbol or "").strip()
        if not query:
            raise ValueError("Gene symbol is required")

        cached = self.cache.find_by_symbol(query)
        if cached is not None:
            logger.debug("resolve(%r): cache hit %s", query, cached.id)
            return self._with_clones(cached)

        logger.debug("resolve(%r): cache miss, querying gateway", query)
        data = self.gateway.lookup(query)
        hits = data.get("hits") if isinstance(data, dict) else None
        if not isinstance(hits, list):
            raise ExternalServiceError("Gene service response has no hits list")
        if not hits or not isinstance(hits[0], dict):
            raise NotFoundError(f"No data found for gene symbol: {query}")

        fields = map_hit_to_gene_fields(hits[0], fallback_symbol=query)
        row = self.gene_repo.upsert_by_symbol(fields)
        gene = Gene.model_validate(row)
        self.cache.put(gene)
        logger.info("Saved gene %s (%s) from external lookup", gene.symbol, gene.id)
        return self._with_clones(gene)

    def search(self, fragment: str, *, limit: int = 10) -> List[Gene]:
        if not (fragment or "").strip():
            return []
        rows = self.gene_repo.search_by_symbol(fragment, limit=limit)
        return [Gene.model_validate(r) for r in rows]

    def get_record(self, gene_id: str) -> GeneRecord:
        gene = self.cache.get(gene_id)
        if gene is None:
            gene = Gene.model_validate(self.gene_repo.get_gene_by_id(gene_id))
            self.cache.put(gene)
        return self._with_clones(gene)

    def list_records(self) -> List[GeneRecord]:
        genes = self.cache.all()
        clones = self._clones_by_gene(g.id for g in genes)
        return [GeneRecord(**g.model_dump(), clones=clones.get(g.id, [])) for g in genes]

    def _with_clones(self, gene: Gene) -> GeneRecord:
        user_id = self.auth.current_user_id()
        rows = self.clone_repo.list_by_gene(gene.id, user_id) if user_id else []
        return GeneRecord(**gene.model_dump(), clones=[Clone.model_validate(r) for r in rows])

    def _clones_by_gene(self, gene_ids: Iterable[str]) -> Dict[str, List[Clone]]:
        user_id = self.auth.current_user_id()
        if not user_id:
            return {}
        grouped: Dict[str, List[Clone]] = defaultdict(list)
        for row in self.clone_repo.list_for_user(user_id, gene_ids=list(gene_ids)):
            clone = Clone.model_validate(row)
            grouped[clone.gene_id].append(clone)
        return grouped
