# gene_annotator/api/routes/table.py
from __future__ import annotations

from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from gene_annotator.api.deps import get_resolver
from gene_annotator.schemas.table import DisplayRow, TableResponse
from gene_annotator.services.reconciliation import GeneResolver
from gene_annotator.services.table_view import export_csv, export_filename, filter_rows, flatten

router = APIRouter(prefix="/table", tags=["table"])


def _filtered(
    resolver: GeneResolver,
    search: Optional[str],
    priority: Optional[str],
    status: Optional[str],
) -> Tuple[List[DisplayRow], int]:
    rows = flatten(resolver.list_records())
    return filter_rows(rows, search=search, priority=priority, status=status), len(rows)


@router.get("/rows", response_model=TableResponse)
def table_rows(
    search: Optional[str] = Query(None, description="matches symbol, name, id, assigned to"),
    priority: Optional[str] = Query(None, description="High | Medium | Low | all"),
    status: Optional[str] = Query(None, description="Complete | Partial | Pending | all"),
    resolver: GeneResolver = Depends(get_resolver),
) -> TableResponse:
    items, total = _filtered(resolver, search, priority, status)
    return TableResponse(items=items, count=len(items), total=total)


@router.get("/export")
def export_table(
    search: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    resolver: GeneResolver = Depends(get_resolver),
) -> Response:
    items, _ = _filtered(resolver, search, priority, status)
    return Response(
        content=export_csv(items),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
