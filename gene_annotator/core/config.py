# gene_annotator/core/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

# .env values never override variables already present in the process env
load_dotenv(override=False)

DEFAULT_MYGENE_FIELDS = (
    "symbol,name,summary,entrezgene,uniprot,ensembl,genomic_pos,"
    "type_of_gene,genomic_pos_hg19,alias"
)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v != "" else default


def _env_required(name: str) -> str:
    v = _env(name)
    if v is None:
        raise RuntimeError(
            f"Missing required environment variable: {name}\n"
            f"Add it to .env (local) or to the deployment environment."
        )
    return v


def _env_bool(name: str, default: bool = False) -> bool:
    v = _env(name)
    if v is None:
        return default
    s = v.strip().lower()
    if s in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _parse_str_list(value: Optional[str]) -> Tuple[str, ...]:
    """
    Accept:
      - comma-separated: "http://localhost:5173,https://genes.example.org"
      - json list: '["http://localhost:5173","https://genes.example.org"]'
    """
    if not value:
        return tuple()

    s = value.strip()
    if s.startswith("["):
        try:
            arr = json.loads(s)
            if isinstance(arr, list):
                items = [str(x).strip() for x in arr if str(x).strip()]
                return tuple(items)
        except json.JSONDecodeError:
            pass

    items = [x.strip() for x in s.split(",") if x.strip()]
    return tuple(items)


@dataclass(frozen=True)
class Settings:
    # app
    app_name: str
    env: str
    debug: bool
    log_level: str
    api_prefix: str

    # cors
    cors_origins: Tuple[str, ...]
    cors_allow_origin_regex: Optional[str]
    cors_allow_credentials: bool

    # supabase
    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: Optional[str]

    # mygene.info
    mygene_base_url: str
    mygene_species: str
    mygene_fields: str
    mygene_result_size: int
    mygene_timeout_seconds: int

    # optional startup checks
    check_supabase_on_startup: bool

    # docs
    disable_docs: bool

    @property
    def is_prod(self) -> bool:
        return self.env.lower() in {"prod", "production"}

    @property
    def docs_url(self) -> Optional[str]:
        return None if self.disable_docs else "/docs"

    @property
    def redoc_url(self) -> Optional[str]:
        return None if self.disable_docs else "/redoc"

    @property
    def public_auth_key(self) -> str:
        return self.supabase_anon_key or self.supabase_service_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    app_name = _env("APP_NAME", "gene-annotator")
    env = _env("ENV", "local")
    debug = _env_bool("DEBUG", default=(env == "local"))
    log_level = _env("LOG_LEVEL", "INFO")
    api_prefix = _env("API_PREFIX", "/api")

    # the gene gateway is meant to be callable from any origin
    cors_origins = _parse_str_list(_env("CORS_ORIGINS", "*"))
    cors_allow_origin_regex = _env("CORS_ALLOW_ORIGIN_REGEX")
    cors_allow_credentials = _env_bool("CORS_ALLOW_CREDENTIALS", default=False)

    supabase_url = _env_required("SUPABASE_URL")
    supabase_service_key = _env_required("SUPABASE_SERVICE_KEY")
    supabase_anon_key = _env("SUPABASE_ANON_KEY")

    mygene_base_url = _env("MYGENE_BASE_URL", "https://mygene.info/v3")
    mygene_species = _env("MYGENE_SPECIES", "human")
    mygene_fields = _env("MYGENE_FIELDS", DEFAULT_MYGENE_FIELDS)
    mygene_result_size = _env_int("MYGENE_RESULT_SIZE", default=5)
    mygene_timeout_seconds = _env_int("MYGENE_TIMEOUT_SECONDS", default=20)

    check_supabase_on_startup = _env_bool("CHECK_SUPABASE_ON_STARTUP", default=False)
    disable_docs = _env_bool("DISABLE_DOCS", default=False)

    # browsers refuse credentials=true together with a wildcard origin
    if cors_allow_credentials and ("*" in cors_origins):
        raise RuntimeError("Invalid CORS config: CORS_ALLOW_CREDENTIALS=true with CORS_ORIGINS containing '*'")

    return Settings(
        app_name=app_name,
        env=env,
        debug=debug,
        log_level=log_level,
        api_prefix=api_prefix,
        cors_origins=cors_origins,
        cors_allow_origin_regex=cors_allow_origin_regex,
        cors_allow_credentials=cors_allow_credentials,
        supabase_url=supabase_url,
        supabase_service_key=supabase_service_key,
        supabase_anon_key=supabase_anon_key,
        mygene_base_url=mygene_base_url,
        mygene_species=mygene_species,
        mygene_fields=mygene_fields,
        mygene_result_size=mygene_result_size,
        mygene_timeout_seconds=mygene_timeout_seconds,
        check_supabase_on_startup=check_supabase_on_startup,
        disable_docs=disable_docs,
    )
