# gene_annotator/api/routes/gateway.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from gene_annotator.api.deps import get_gateway
from gene_annotator.core.errors import ExternalServiceError
from gene_annotator.services.gene_lookup import GeneLookupGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fetch-gene-data", tags=["gateway"])


def _forward(gateway: GeneLookupGateway, gene_symbol: Optional[str]) -> JSONResponse:
    """
    Pass-through contract: upstream JSON verbatim, or {"error": message}
    with 400 (no symbol) / 500 (upstream failure).
    """
    symbol = (gene_symbol or "").strip() if isinstance(gene_symbol, str) else ""
    if not symbol:
        return JSONResponse(status_code=400, content={"error": "Gene symbol is required"})
    try:
        return JSONResponse(content=gateway.lookup(symbol))
    except ExternalServiceError as e:
        logger.error("fetch-gene-data failed for %r: %s", symbol, e)
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("")
def fetch_gene_data_get(
    gene_symbol: Optional[str] = Query(None, alias="geneSymbol"),
    gateway: GeneLookupGateway = Depends(get_gateway),
) -> JSONResponse:
    return _forward(gateway, gene_symbol)


@router.post("")
def fetch_gene_data_post(
    body: Optional[Dict[str, Any]] = Body(default=None),
    gateway: GeneLookupGateway = Depends(get_gateway),
) -> JSONResponse:
    return _forward(gateway, (body or {}).get("geneSymbol"))
