# gene_annotator/api/routes/genes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from gene_annotator.api.deps import get_clone_service, get_resolver
from gene_annotator.schemas.clone import Clone, CloneCreate
from gene_annotator.schemas.gene import (
    GeneListResponse,
    GeneRecord,
    GeneSearchResponse,
    ResolveRequest,
)
from gene_annotator.services.clone_service import CloneService
from gene_annotator.services.reconciliation import GeneResolver

router = APIRouter(prefix="/genes", tags=["genes"])


@router.get("", response_model=GeneListResponse)
def list_genes(resolver: GeneResolver = Depends(get_resolver)) -> GeneListResponse:
    items = resolver.list_records()
    return GeneListResponse(items=items, count=len(items))


@router.get("/search", response_model=GeneSearchResponse)
def search_genes(
    q: str = Query(..., min_length=1, description="symbol fragment, case-insensitive"),
    limit: int = Query(10, ge=1, le=50),
    resolver: GeneResolver = Depends(get_resolver),
) -> GeneSearchResponse:
    items = resolver.search(q, limit=limit)
    return GeneSearchResponse(items=items, count=len(items))


@router.post("/resolve", response_model=GeneRecord)
def resolve_gene(req: ResolveRequest, resolver: GeneResolver = Depends(get_resolver)) -> GeneRecord:
    return resolver.resolve(req.symbol)


@router.get("/{gene_id}", response_model=GeneRecord)
def get_gene(gene_id: str, resolver: GeneResolver = Depends(get_resolver)) -> GeneRecord:
    return resolver.get_record(gene_id)


@router.post("/{gene_id}/clones", response_model=Clone, status_code=201)
def add_clone(
    gene_id: str,
    req: CloneCreate,
    service: CloneService = Depends(get_clone_service),
) -> Clone:
    return service.add_clone(gene_id, req)
