from .places import CatalogStore, PlacesRepository
from . import models

__all__ = ["CatalogStore", "PlacesRepository", "models"]
