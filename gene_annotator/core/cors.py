# gene_annotator/core/cors.py
from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from gene_annotator.core.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """
    CORS for the dashboard UI and for third parties calling the
    fetch-gene-data gateway directly. Defaults to every origin.
    """
    allow_origins = list(settings.cors_origins) if settings.cors_origins else ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=settings.cors_allow_origin_regex,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
        expose_headers=["content-disposition"],
        max_age=600,
    )
