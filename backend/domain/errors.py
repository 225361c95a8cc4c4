"""
Error types raised across the place resolution engine.
"""
from typing import Optional


class InvalidPlaceInput(ValueError):
    """Name or coordinate failed validation."""


class CatalogStoreError(Exception):
    """The catalog store failed a query or insert."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class CatalogUniqueViolation(CatalogStoreError):
    """Insert rejected by a uniqueness constraint (SQLSTATE 23505)."""

    def __init__(self, message: str, code: Optional[str] = "23505"):
        super().__init__(message, code=code)


class PlaceCreationError(Exception):
    """A new place could not be created."""


class PlaceConflictError(PlaceCreationError):
    """Uniqueness violation on insert, yet no existing place could be found."""

    def __init__(self, message: str = "Failed to create place due to conflict. Please try again."):
        super().__init__(message)
