# gene_annotator/services/table_view.py
from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from gene_annotator.schemas.clone import Clone, CloneFields
from gene_annotator.schemas.gene import GeneRecord
from gene_annotator.schemas.table import DisplayRow

ORGANISM = "Homo sapiens"
UNASSIGNED = "Unassigned"


def derive_priority(tags: Sequence[str]) -> str:
    if "high-priority" in tags:
        return "High"
    if "medium-priority" in tags:
        return "Medium"
    return "Low"


def derive_status(tags: Sequence[str]) -> str:
    if "complete" in tags:
        return "Complete"
    if "partial" in tags:
        return "Partial"
    return "Pending"


def _iso_date(ts: Optional[datetime]) -> str:
    return ts.date().isoformat() if ts else ""


def _gene_fields(gene: GeneRecord) -> dict:
    return {
        "gene_id": gene.id,
        "symbol": gene.symbol,
        "name": gene.name or "Unknown",
        "chromosome": gene.map_location or "N/A",
        "organism": ORGANISM,
        "protein_name": gene.description or "N/A",
    }


def _clone_row(gene: GeneRecord, clone: Clone) -> DisplayRow:
    tags = list(clone.tags or [])
    attrs = clone.model_dump(include=set(CloneFields.model_fields))
    attrs.update(
        _gene_fields(gene),
        id=f"{gene.id}:{clone.id}",
        clone_id=clone.id,
        tags=tags,
        priority=derive_priority(tags),
        status=derive_status(tags),
        assigned_to=clone.assigned_to or UNASSIGNED,
        last_modified=_iso_date(clone.updated_at or gene.updated_at),
    )
    return DisplayRow(**attrs)


def _placeholder_row(gene: GeneRecord) -> DisplayRow:
    return DisplayRow(
        id=gene.id,
        priority=derive_priority([]),
        status=derive_status([]),
        assigned_to=UNASSIGNED,
        last_modified=_iso_date(gene.updated_at),
        **_gene_fields(gene),
    )


def flatten(records: Iterable[GeneRecord]) -> List[DisplayRow]:
    """One row per clone; exactly one placeholder row for a gene with none."""
    rows: List[DisplayRow] = []
    for gene in records:
        if not gene.clones:
            rows.append(_placeholder_row(gene))
            continue
        rows.extend(_clone_row(gene, c) for c in gene.clones)
    return rows


def _active(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != "all"


def filter_rows(
    rows: Iterable[DisplayRow],
    *,
    search: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
) -> List[DisplayRow]:
    needle = (search or "").strip().lower()
    out: List[DisplayRow] = []
    for r in rows:
        if needle and not any(
            needle in (v or "").lower() for v in (r.symbol, r.name, r.id, r.assigned_to)
        ):
            continue
        if _active(priority) and r.priority != priority:
            continue
        if _active(status) and r.status != status:
            continue
        out.append(r)
    return out


def _text(attr: str) -> Callable[[DisplayRow], str]:
    def get(r: DisplayRow) -> str:
        v = getattr(r, attr)
        return "" if v is None else str(v)

    return get


def _price(r: DisplayRow) -> str:
    return "" if r.price_usd is None else str(r.price_usd)


def _tags(r: DisplayRow) -> str:
    return "; ".join(r.tags)


EXPORT_COLUMNS: Tuple[Tuple[str, Callable[[DisplayRow], str]], ...] = (
    ("Gene ID", _text("id")),
    ("Symbol", _text("symbol")),
    ("Name", _text("name")),
    ("Chromosome", _text("chromosome")),
    ("Organism", _text("organism")),
    ("Protein Name", _text("protein_name")),
    ("Priority", _text("priority")),
    ("Assigned To", _text("assigned_to")),
    ("Last Modified", _text("last_modified")),
    ("Status", _text("status")),
    ("Tags", _tags),
    ("Notes", _text("notes")),
    ("NBT Number", _text("nbt_num")),
    ("Catalog Number", _text("catalog_num")),
    ("Host", _text("host")),
    ("Clone", _text("clone")),
    ("Clonality", _text("clonality")),
    ("Isotype", _text("isotype")),
    ("Price (USD)", _price),
    ("Parent Product ID", _text("parent_product_id")),
    ("Light Chain", _text("light_chain")),
    ("Storage Temperature", _text("storage_temperature")),
    ("Lead Time", _text("lead_time")),
    ("Country of Origin", _text("country_of_origin")),
    ("Datasheet URL", _text("datasheet_url")),
    ("Website URL", _text("website_url_to_product")),
    ("Product Application", _text("product_application")),
    ("Research Area", _text("research_area")),
    ("Image URL", _text("image_url")),
    ("Image Filename", _text("image_filename")),
    ("Image Caption", _text("image_caption")),
    ("Positive Control", _text("positive_control")),
    ("Expression System", _text("expression_system")),
    ("Purification", _text("purification")),
    ("Supplied As", _text("supplied_as")),
    ("Immunogen", _text("immunogen")),
)

EXPORT_HEADERS = tuple(h for h, _ in EXPORT_COLUMNS)


def export_csv(rows: Iterable[DisplayRow]) -> str:
    """
    Serialize rows (already filtered) in EXPORT_HEADERS order. Cells holding
    a comma, quote, CR or LF are quoted with inner quotes doubled; rows end
    in CRLF so a lone CR inside a cell is always quoted.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(EXPORT_HEADERS)
    for r in rows:
        writer.writerow([get(r) for _, get in EXPORT_COLUMNS])
    return buf.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    return f"gene_data_{(today or date.today()).isoformat()}.csv"
