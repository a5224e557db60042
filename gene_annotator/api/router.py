# gene_annotator/api/router.py
from __future__ import annotations

from fastapi import APIRouter

from gene_annotator.api.routes import auth, clones, gateway, genes, imports, table

router = APIRouter()

router.include_router(gateway.router)
router.include_router(auth.router)
router.include_router(genes.router)
router.include_router(clones.router)
router.include_router(imports.router)
router.include_router(table.router)
