# gene_annotator/schemas/clone.py
from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from gene_annotator.schemas.common import SchemaBase

# digits with an optional fraction and exponent; no "1_000", "NaN" or "Infinity"
_PLAIN_DECIMAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def is_plain_decimal(value: str) -> bool:
    return _PLAIN_DECIMAL.fullmatch(value.strip()) is not None


def split_tags(value: Any) -> List[str]:
    """Tags arrive as a list or as the comma-separated string the edit form sends."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(t).strip() for t in items if str(t).strip()]


class CloneFields(SchemaBase):
    clone: Optional[str] = None
    host: Optional[str] = None
    clonality: Optional[str] = None
    isotype: Optional[str] = None
    light_chain: Optional[str] = None
    immunogen: Optional[str] = None

    nbt_num: Optional[str] = None
    catalog_num: Optional[str] = None
    parent_product_id: Optional[str] = None
    price_usd: Optional[Decimal] = None
    product_application: Optional[str] = None
    research_area: Optional[str] = None

    storage_temperature: Optional[str] = None
    lead_time: Optional[str] = None
    country_of_origin: Optional[str] = None
    expression_system: Optional[str] = None
    purification: Optional[str] = None
    supplied_as: Optional[str] = None
    species_reactivity: Optional[str] = None
    product_cellular_localization: Optional[str] = None
    molecular_wt: Optional[str] = None
    positive_control: Optional[str] = None

    datasheet_url: Optional[str] = None
    sds_url: Optional[str] = None
    website_url_to_product: Optional[str] = None
    image_url: Optional[str] = None
    image_filename: Optional[str] = None
    image_caption: Optional[str] = None
    notes: Optional[str] = None

    assigned_to: Optional[str] = None
    tags: Optional[List[str]] = None

    # lab inventory attributes (clone CSV import)
    vector: Optional[str] = None
    bacterial_strain: Optional[str] = None
    antibiotic_resistance: Optional[str] = None
    concentration: Optional[Decimal] = None
    location: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        # an explicit null clears the tags; the column is not null
        return split_tags(v)

    @field_validator("price_usd", "concentration", mode="before")
    @classmethod
    def _blank_decimal(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return None
            if not is_plain_decimal(v):
                raise ValueError("must be a plain decimal number")
            return v.strip()
        return v

    @field_validator("price_usd", "concentration")
    @classmethod
    def _finite_decimal(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and not v.is_finite():
            raise ValueError("must be a finite number")
        return v

    def to_payload(self, *, only_set: bool) -> Dict[str, Any]:
        """JSON-safe dict for PostgREST; decimals are sent as strings."""
        return self.model_dump(mode="json", exclude_unset=only_set, exclude={"id", "gene_id", "user_id", "created_at", "updated_at"})


class CloneCreate(CloneFields):
    clone: str = Field(..., description="Clone identifier")

    @field_validator("clone")
    @classmethod
    def _clone_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("clone is required")
        return v


class CloneUpdate(CloneFields):
    """Partial update; only fields present in the request are written."""

    @field_validator("clone")
    @classmethod
    def _clone_not_blank(cls, v: Optional[str]) -> str:
        # only runs when the request sends the key; omitting it leaves clone as is
        if v is None or not v.strip():
            raise ValueError("clone cannot be blank")
        return v


class Clone(CloneFields):
    id: str
    gene_id: str
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="after")
    @classmethod
    def _tags_default(cls, v):
        return v or []
