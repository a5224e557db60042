# gene_annotator/api/routes/clones.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from gene_annotator.api.deps import get_clone_service
from gene_annotator.schemas.clone import Clone, CloneUpdate
from gene_annotator.services.clone_service import CloneService

router = APIRouter(prefix="/clones", tags=["clones"])


@router.patch("/{clone_id}", response_model=Clone)
def update_clone(
    clone_id: str,
    req: CloneUpdate,
    service: CloneService = Depends(get_clone_service),
) -> Clone:
    return service.update_clone(clone_id, req)


@router.delete("/{clone_id}", status_code=204)
def delete_clone(clone_id: str, service: CloneService = Depends(get_clone_service)) -> Response:
    service.delete_clone(clone_id)
    return Response(status_code=204)
