# gene_annotator/services/csv_import.py
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from gene_annotator.core.errors import PersistError, ValidationError
from gene_annotator.db.repositories.clone_repo import CloneRepo
from gene_annotator.db.repositories.gene_repo import GeneRepo
from gene_annotator.db.supabase_client import DBError
from gene_annotator.schemas.clone import CloneFields, is_plain_decimal
from gene_annotator.services.auth import AuthProvider, require_user
from gene_annotator.services.reconciliation import GeneCache

logger = logging.getLogger(__name__)

Row = Dict[str, str]
ProgressCallback = Callable[[float], None]


class ImportKind(str, Enum):
    GENES = "genes"
    CLONES = "clones"


GENE_COLUMNS = ("symbol", "name", "entrezgene", "chromosome", "map_location", "type_of_gene", "summary")

CLONE_COLUMNS = (
    "gene_symbol",
    "clone_id",
    "vector",
    "bacterial_strain",
    "antibiotic_resistance",
    "concentration",
    "location",
    "notes",
    "priority",
    "status",
)

_TEMPLATES = {
    ImportKind.GENES: (
        ",".join(GENE_COLUMNS) + "\n"
        "BRCA1,BRCA1 DNA repair associated,672,17q21.31,17q21.31,protein-coding,"
        "BRCA1 encodes a 190 kD nuclear phosphoprotein...\n"
    ),
    ImportKind.CLONES: (
        ",".join(CLONE_COLUMNS) + "\n"
        "BRCA1,BRCA1-001,pET28a,DH5α,Kanamycin,100,Freezer A1,Test clone,high,active\n"
    ),
}

_WS = re.compile(r"\s+")


@dataclass
class ParseResult:
    rows: List[Row] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid_rows: List[Row] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success_count: int = 0
    fail_count: int = 0
    failures: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "failures": list(self.failures),
        }


def template_csv(kind: ImportKind) -> str:
    return _TEMPLATES[ImportKind(kind)]


def template_filename(kind: ImportKind) -> str:
    return f"{ImportKind(kind).value}_template.csv"


# -----------------------
# Parsing
# -----------------------
def normalize_header(name: str) -> str:
    """'Gene Symbol ' -> 'gene_symbol'"""
    return _WS.sub("_", (name or "").strip().lower())


def _is_blank(cells: List[str]) -> bool:
    return all(not (c or "").strip() for c in cells)


def decode_upload(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    return data.decode("utf-8-sig")


def parse_delimited(text: str) -> ParseResult:
    """
    Header-first CSV -> list of {normalized_header: cell}.

    Blank rows are dropped and row numbers count the remaining data rows
    from 1. Field-count mismatches are reported but the row is still
    returned (padded or truncated) so callers can preview it.
    """
    result = ParseResult()
    reader = csv.reader(io.StringIO(text, newline=""))

    headers: Optional[List[str]] = None
    row_no = 0
    try:
        for cells in reader:
            if _is_blank(cells):
                continue
            if headers is None:
                headers = [normalize_header(h) for h in cells]
                seen = set()
                for h in headers:
                    if h and h in seen:
                        result.errors.append(f"Duplicate column: {h}")
                    seen.add(h)
                continue

            row_no += 1
            n = len(headers)
            if len(cells) > n:
                result.errors.append(f"Row {row_no}: Too many fields: expected {n} fields but parsed {len(cells)}")
            elif len(cells) < n:
                result.errors.append(f"Row {row_no}: Too few fields: expected {n} fields but parsed {len(cells)}")
            padded = (cells + [""] * n)[:n]
            result.rows.append({h: v for h, v in zip(headers, padded) if h})
    except csv.Error as e:
        result.errors.append(f"Row {row_no + 1}: {e}")

    if headers is None:
        result.errors.append("CSV header row is required")
    return result


# -----------------------
# Validation
# -----------------------
def _present(row: Row, key: str) -> bool:
    return bool((row.get(key) or "").strip())


def _pick(row: Row, columns: Tuple[str, ...]) -> Row:
    return {c: row[c] for c in columns if c in row}


def parse_decimal(value: str) -> Optional[Decimal]:
    """Plain decimal literal (e.g. "12", "-0.5", "1e3") as a Decimal, else None."""
    if not is_plain_decimal(value):
        return None
    try:
        return Decimal(value.strip())
    except InvalidOperation:
        return None


def validate_gene_rows(rows: List[Row]) -> ValidationResult:
    result = ValidationResult()
    for i, row in enumerate(rows, start=1):
        if not _present(row, "symbol"):
            result.errors.append(f"Row {i}: Gene symbol is required")
            continue
        result.valid_rows.append(_pick(row, GENE_COLUMNS))
    return result


def validate_clone_rows(rows: List[Row]) -> ValidationResult:
    result = ValidationResult()
    for i, row in enumerate(rows, start=1):
        if not _present(row, "gene_symbol") or not _present(row, "clone_id"):
            result.errors.append(f"Row {i}: Gene symbol and clone ID are required")
            continue
        if _present(row, "concentration") and parse_decimal(row["concentration"]) is None:
            result.errors.append(f"Row {i}: Invalid concentration value")
            continue
        result.valid_rows.append(_pick(row, CLONE_COLUMNS))
    return result


def validate(rows: List[Row], kind: ImportKind) -> ValidationResult:
    if ImportKind(kind) is ImportKind.GENES:
        return validate_gene_rows(rows)
    return validate_clone_rows(rows)


# -----------------------
# Row -> payload
# -----------------------
def _non_empty(payload: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {k: v for k, v in payload.items() if v is not None and v.strip() != ""}


def gene_payload(row: Row) -> Dict[str, str]:
    summary = row.get("summary")
    payload = _non_empty(
        {
            "name": row.get("name"),
            "entrez_id": row.get("entrezgene"),
            "map_location": row.get("map_location") or row.get("chromosome"),
            "type_of_gene": row.get("type_of_gene"),
            "summary": summary,
            "description": summary,
        }
    )
    payload["symbol"] = row["symbol"].strip()
    return payload


def clone_tags(row: Row) -> List[str]:
    """priority/status columns become the tags the table view classifies on."""
    tags: List[str] = []
    priority = (row.get("priority") or "").strip().lower()
    if priority:
        tags.append(f"{priority}-priority")
    status = (row.get("status") or "").strip().lower()
    if status:
        tags.append(status)
    return tags


def clone_payload(row: Row) -> Dict[str, object]:
    values: Dict[str, object] = _non_empty(
        {
            "clone": row["clone_id"].strip(),
            "vector": row.get("vector"),
            "bacterial_strain": row.get("bacterial_strain"),
            "antibiotic_resistance": row.get("antibiotic_resistance"),
            "concentration": row.get("concentration"),
            "location": row.get("location"),
            "notes": row.get("notes"),
        }
    )
    tags = clone_tags(row)
    if tags:
        values["tags"] = tags
    return CloneFields(**values).to_payload(only_set=True)


# -----------------------
# Pipeline
# -----------------------
class ImportPipeline:
    """
    parse -> validate -> bulk persist.

    Validation is all-or-nothing for the batch; persistence is row by row,
    so a failure mid-batch leaves earlier rows committed.
    """

    def __init__(
        self,
        *,
        gene_repo: GeneRepo,
        clone_repo: CloneRepo,
        cache: GeneCache,
        auth: AuthProvider,
    ):
        self.gene_repo = gene_repo
        self.clone_repo = clone_repo
        self.cache = cache
        self.auth = auth

    def prepare(self, data: Union[bytes, str], kind: ImportKind) -> List[Row]:
        """Parse and validate; raises ValidationError with every row message."""
        try:
            text = decode_upload(data)
        except UnicodeDecodeError as e:
            raise ValidationError([f"File is not valid UTF-8: {e.reason}"]) from e

        parsed = parse_delimited(text)
        if parsed.errors:
            raise ValidationError(parsed.errors)
        if not parsed.rows:
            raise ValidationError(["CSV file contains no data rows"])

        checked = validate(parsed.rows, kind)
        if checked.errors:
            raise ValidationError(checked.errors)
        return checked.valid_rows

    def check_access(self, kind: ImportKind) -> Optional[str]:
        if ImportKind(kind) is ImportKind.CLONES:
            return require_user(self.auth)
        return self.auth.current_user_id()

    def run(
        self,
        data: Union[bytes, str],
        kind: ImportKind,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        rows = self.prepare(data, kind)
        return self.bulk_persist(rows, kind, on_progress)

    def bulk_persist(
        self,
        valid_rows: List[Row],
        kind: ImportKind,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        result = ImportResult()
        for progress, result in self.persist_steps(valid_rows, kind):
            if on_progress is not None:
                on_progress(progress)
        return result

    def persist_steps(self, valid_rows: List[Row], kind: ImportKind) -> Iterator[Tuple[float, ImportResult]]:
        """
        Persist rows one at a time, yielding (percent_done, running_result)
        after each. Closing the generator stops the import; rows already
        written stay written.
        """
        kind = ImportKind(kind)
        user_id = self.check_access(kind)
        result = ImportResult()
        total = len(valid_rows)

        try:
            for i, row in enumerate(valid_rows, start=1):
                try:
                    if kind is ImportKind.GENES:
                        self.gene_repo.upsert_by_symbol(gene_payload(row))
                    else:
                        self._persist_clone(i, row, user_id)
                    result.success_count += 1
                except PersistError as e:
                    self._record_failure(result, e)
                except DBError as e:
                    self._record_failure(result, PersistError(i, str(e)))
                yield 100.0 * i / total, result
        finally:
            logger.info(
                "%s import: %d succeeded, %d failed, %d/%d processed",
                kind.value,
                result.success_count,
                result.fail_count,
                result.success_count + result.fail_count,
                total,
            )
            if kind is ImportKind.GENES and result.success_count:
                self.cache.refresh()

    def _persist_clone(self, row_no: int, row: Row, user_id: Optional[str]) -> None:
        symbol = row["gene_symbol"].strip()
        gene = self.gene_repo.find_by_symbol(symbol, select="id,symbol")
        if gene is None:
            raise PersistError(row_no, f"Gene {symbol} not found")
        self.clone_repo.create(gene_id=str(gene["id"]), user_id=str(user_id), fields=clone_payload(row))

    @staticmethod
    def _record_failure(result: ImportResult, err: PersistError) -> None:
        logger.warning("Import row failed: %s", err)
        result.fail_count += 1
        result.failures.append(str(err))
