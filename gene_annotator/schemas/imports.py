# gene_annotator/schemas/imports.py
from __future__ import annotations

from typing import List

from pydantic import Field

from gene_annotator.schemas.common import SchemaBase


class ImportResponse(SchemaBase):
    success_count: int = Field(..., ge=0)
    fail_count: int = Field(..., ge=0)
    failures: List[str] = Field(default_factory=list, description="Row-indexed persist failures")


class ImportPreviewResponse(SchemaBase):
    row_count: int = Field(..., ge=0, description="Rows that would be imported")
    errors: List[str] = Field(default_factory=list)
