# gene_annotator/services/clone_service.py
from __future__ import annotations

import logging

from gene_annotator.db.repositories.clone_repo import CloneRepo
from gene_annotator.schemas.clone import Clone, CloneCreate, CloneUpdate
from gene_annotator.services.auth import AuthProvider, require_user
from gene_annotator.services.reconciliation import GeneResolver

logger = logging.getLogger(__name__)


class CloneService:
    """
    Add / edit / delete a user's clones. Every operation needs a signed-in
    user and only ever touches that user's rows (last write wins).
    """

    def __init__(self, *, clone_repo: CloneRepo, resolver: GeneResolver, auth: AuthProvider):
        self.clone_repo = clone_repo
        self.resolver = resolver
        self.auth = auth

    def add_clone(self, gene_id: str, req: CloneCreate) -> Clone:
        user_id = require_user(self.auth)
        # raises DBNotFoundError for an unknown gene
        gene = self.resolver.get_record(gene_id)
        row = self.clone_repo.create(gene_id=gene.id, user_id=user_id, fields=req.to_payload(only_set=True))
        logger.info("Clone %s added to %s", row.get("id"), gene.symbol)
        return Clone.model_validate(row)

    def update_clone(self, clone_id: str, req: CloneUpdate) -> Clone:
        user_id = require_user(self.auth)
        row = self.clone_repo.update(clone_id, user_id, req.to_payload(only_set=True))
        return Clone.model_validate(row)

    def delete_clone(self, clone_id: str) -> None:
        user_id = require_user(self.auth)
        self.clone_repo.delete(clone_id, user_id)
        logger.info("Clone %s deleted", clone_id)
