# gene_annotator/services/gene_lookup.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests

from gene_annotator.core.config import DEFAULT_MYGENE_FIELDS, Settings, get_settings
from gene_annotator.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class GeneLookupGateway(Protocol):
    def lookup(self, symbol: str) -> Dict[str, Any]:
        """Return the upstream JSON for `symbol` unmodified."""
        ...


@dataclass
class MyGeneGateway:
    """
    Pass-through client for the MyGene.info query endpoint.

    GET {base_url}/query?q=<symbol>&species=human&fields=...&size=5
    The response is returned as decoded JSON, shaped {"hits": [...], ...}.
    No caching, no retries.
    """

    base_url: str
    species: str = "human"
    fields: str = DEFAULT_MYGENE_FIELDS
    size: int = 5
    timeout_s: int = 20
    session: Optional[requests.Session] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MyGeneGateway":
        s = settings or get_settings()
        return cls(
            base_url=s.mygene_base_url,
            species=s.mygene_species,
            fields=s.mygene_fields,
            size=s.mygene_result_size,
            timeout_s=s.mygene_timeout_seconds,
        )

    def _url(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def lookup(self, symbol: str) -> Dict[str, Any]:
        params = {
            "q": symbol,
            "species": self.species,
            "fields": self.fields,
            "size": self.size,
        }
        http = self.session or requests
        try:
            r = http.get(
                self._url("/query"),
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.exception("MyGene.info request failed for %r", symbol)
            raise ExternalServiceError(f"MyGene.info request failed: {e}") from e

        if r.status_code >= 400:
            raise ExternalServiceError(f"MyGene.info API error: {r.status_code}")

        try:
            data = r.json()
        except ValueError as e:
            raise ExternalServiceError("MyGene.info returned invalid JSON") from e

        hits = data.get("hits") if isinstance(data, dict) else None
        logger.info("MyGene.info lookup %r -> %s hit(s)", symbol, len(hits) if isinstance(hits, list) else "?")
        return data
