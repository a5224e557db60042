# gene_annotator/schemas/gene.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from gene_annotator.schemas.clone import Clone
from gene_annotator.schemas.common import SchemaBase


class Gene(SchemaBase):
    id: str
    symbol: str
    entrez_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    map_location: Optional[str] = None
    uniprot_id: Optional[str] = None
    ensembl_id: Optional[str] = None
    type_of_gene: Optional[str] = None
    alias: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("entrez_id", mode="before")
    @classmethod
    def _entrez_as_str(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("alias", mode="before")
    @classmethod
    def _alias_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(x) for x in v]


class GeneRecord(Gene):
    """A gene with the current user's clones attached."""

    clones: List[Clone] = Field(default_factory=list)


class ResolveRequest(SchemaBase):
    symbol: str = Field(..., min_length=1, description="Gene symbol, e.g. BRCA1")


class GeneListResponse(SchemaBase):
    items: List[GeneRecord]
    count: int


class GeneSearchResponse(SchemaBase):
    items: List[Gene]
    count: int
