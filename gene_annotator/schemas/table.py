# gene_annotator/schemas/table.py
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from gene_annotator.schemas.clone import CloneFields
from gene_annotator.schemas.common import SchemaBase

Priority = Literal["High", "Medium", "Low"]
Status = Literal["Complete", "Partial", "Pending"]


class DisplayRow(CloneFields):
    """
    One table row: a gene joined with one of its clones, or a placeholder
    row for a gene without clones. Clone attributes are inherited verbatim.
    """

    id: str = Field(..., description="gene id, or '<gene_id>:<clone_id>' for clone rows")
    gene_id: str
    clone_id: Optional[str] = None

    symbol: str
    name: str
    chromosome: str
    organism: str = "Homo sapiens"
    protein_name: str

    priority: Priority
    status: Status
    assigned_to: str = "Unassigned"
    last_modified: str = ""
    tags: List[str] = Field(default_factory=list)


class TableResponse(SchemaBase):
    items: List[DisplayRow]
    count: int
    total: int
