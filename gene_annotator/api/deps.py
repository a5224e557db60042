# gene_annotator/api/deps.py
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from gene_annotator.db.repositories.clone_repo import CloneRepo
from gene_annotator.db.repositories.gene_repo import GeneRepo
from gene_annotator.services.auth import AuthProvider, SupabaseAuthProvider, bearer_token
from gene_annotator.services.clone_service import CloneService
from gene_annotator.services.csv_import import ImportPipeline
from gene_annotator.services.gene_lookup import GeneLookupGateway, MyGeneGateway
from gene_annotator.services.reconciliation import GeneCache, GeneResolver


@lru_cache(maxsize=1)
def get_gene_repo() -> GeneRepo:
    return GeneRepo()


@lru_cache(maxsize=1)
def get_clone_repo() -> CloneRepo:
    return CloneRepo()


@lru_cache(maxsize=1)
def get_gene_cache() -> GeneCache:
    return GeneCache(get_gene_repo())


@lru_cache(maxsize=1)
def get_gateway() -> GeneLookupGateway:
    return MyGeneGateway.from_settings()


def get_access_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    return bearer_token(authorization)


def get_auth(token: Optional[str] = Depends(get_access_token)) -> AuthProvider:
    return SupabaseAuthProvider(token)


def get_resolver(
    auth: AuthProvider = Depends(get_auth),
    cache: GeneCache = Depends(get_gene_cache),
    gene_repo: GeneRepo = Depends(get_gene_repo),
    clone_repo: CloneRepo = Depends(get_clone_repo),
    gateway: GeneLookupGateway = Depends(get_gateway),
) -> GeneResolver:
    return GeneResolver(cache=cache, gene_repo=gene_repo, clone_repo=clone_repo, gateway=gateway, auth=auth)


def get_clone_service(
    auth: AuthProvider = Depends(get_auth),
    resolver: GeneResolver = Depends(get_resolver),
    clone_repo: CloneRepo = Depends(get_clone_repo),
) -> CloneService:
    return CloneService(clone_repo=clone_repo, resolver=resolver, auth=auth)


def get_import_pipeline(
    auth: AuthProvider = Depends(get_auth),
    cache: GeneCache = Depends(get_gene_cache),
    gene_repo: GeneRepo = Depends(get_gene_repo),
    clone_repo: CloneRepo = Depends(get_clone_repo),
) -> ImportPipeline:
    return ImportPipeline(gene_repo=gene_repo, clone_repo=clone_repo, cache=cache, auth=auth)
