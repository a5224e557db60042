# gene_annotator/schemas/common.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SchemaBase(BaseModel):
    """
    Pydantic v2 base schema.
    - populate_by_name: alias fields (geneSymbol etc.) accept either name
    - extra=ignore: new DB columns never break parsing
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class APIError(SchemaBase):
    code: str = Field(..., description="Machine-readable error code (e.g. NOT_FOUND)")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[Dict[str, Any]] = Field(default=None, description="Optional structured detail")


class ErrorResponse(SchemaBase):
    error: APIError
