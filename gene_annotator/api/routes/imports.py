# gene_annotator/api/routes/imports.py
from __future__ import annotations

import json
from typing import Iterator, List, Union

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response, StreamingResponse

from gene_annotator.api.deps import get_import_pipeline
from gene_annotator.core.errors import ValidationError
from gene_annotator.schemas.imports import ImportPreviewResponse, ImportResponse
from gene_annotator.services.csv_import import (
    ImportKind,
    ImportPipeline,
    ImportResult,
    Row,
    template_csv,
    template_filename,
)

router = APIRouter(prefix="/imports", tags=["imports"])


@router.get("/templates/{kind}")
def download_template(kind: ImportKind) -> Response:
    return Response(
        content=template_csv(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{template_filename(kind)}"'},
    )


@router.post("/{kind}/preview", response_model=ImportPreviewResponse)
def preview_import(
    kind: ImportKind,
    file: UploadFile = File(...),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
) -> ImportPreviewResponse:
    try:
        rows = pipeline.prepare(file.file.read(), kind)
    except ValidationError as e:
        return ImportPreviewResponse(row_count=0, errors=e.errors)
    return ImportPreviewResponse(row_count=len(rows))


def _progress_events(pipeline: ImportPipeline, rows: List[Row], kind: ImportKind) -> Iterator[str]:
    result = ImportResult()
    for progress, result in pipeline.persist_steps(rows, kind):
        yield json.dumps({"progress": round(progress, 2)}) + "\n"
    yield json.dumps({"result": result.as_dict()}) + "\n"


@router.post("/{kind}", response_model=ImportResponse)
def import_csv(
    kind: ImportKind,
    file: UploadFile = File(...),
    stream: bool = Query(False, description="stream NDJSON progress events"),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
) -> Union[ImportResponse, StreamingResponse]:
    rows = pipeline.prepare(file.file.read(), kind)
    # auth failure must surface as a status code, before any streaming starts
    pipeline.check_access(kind)

    if stream:
        return StreamingResponse(_progress_events(pipeline, rows, kind), media_type="application/x-ndjson")

    result = pipeline.bulk_persist(rows, kind)
    return ImportResponse(**result.as_dict())
