# gene_annotator/core/errors.py
from __future__ import annotations

from typing import List, Optional, Sequence


class AppError(Exception):
    """Base class for user-facing domain errors."""


class NotFoundError(AppError):
    """Gene symbol absent both locally and in the external service."""


class ExternalServiceError(AppError):
    """Network or upstream failure talking to the gene information service."""


class ValidationError(AppError):
    """
    Batch-level import rejection.

    `errors` keeps the row-indexed messages in file order; nothing from the
    batch has been persisted when this is raised.
    """

    def __init__(self, errors: Sequence[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        super().__init__(message or f"{len(self.errors)} row(s) failed validation")


class PersistError(AppError):
    """A single row failed to persist after validation passed."""

    def __init__(self, row: int, message: str):
        self.row = row
        super().__init__(f"Row {row}: {message}")


class AuthenticationRequiredError(AppError):
    """Clone mutation attempted without a signed-in user."""

    def __init__(self, message: str = "You must be signed in to modify clones"):
        super().__init__(message)
