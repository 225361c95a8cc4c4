"""
Create-or-get for catalog places, tolerating a single insert race.
"""
from __future__ import annotations

import logging

from domain.errors import CatalogUniqueViolation, CatalogStoreError, PlaceConflictError, PlaceCreationError
from domain.models import MatchResult, Place, PlaceInput
from repositories.places import CatalogStore
from services.place_resolver import PlaceResolver

logger = logging.getLogger(__name__)


class PlaceRegistrar:
    def __init__(self, store: CatalogStore, resolver: PlaceResolver | None = None):
        self.store = store
        self.resolver = resolver or PlaceResolver(store)

    async def _find(self, data: PlaceInput) -> MatchResult:
        return await self.resolver.find_existing(
            data.name, data.coordinate, data.lookup_external_id
        )

    async def create_or_get_with_method(self, data: PlaceInput) -> tuple[Place, str]:
        """Like create_or_get, also returning how the place was obtained.

        The method is a resolver tier name or "created".
        """
        data.validate()

        match = await self._find(data)
        if match.place is not None:
            logger.debug("Reusing place %s via %s", match.place.id, match.method.value)
            return match.place, match.method.value

        payload = data.to_insert_payload()
        try:
            place = await self.store.insert(payload)
        except CatalogUniqueViolation as exc:
            logger.info("Insert conflict for %r, re-resolving: %s", data.name, exc.message)
            retry = await self._find(data)
            if retry.place is not None:
                return retry.place, retry.method.value
            logger.error("Insert conflict for %r but no existing place found", data.name)
            raise PlaceConflictError() from exc
        except CatalogStoreError as exc:
            logger.error("Error creating place %r: %s", data.name, exc.message)
            raise PlaceCreationError(
                f"Failed to create place: {exc.message or 'Unknown error'}"
            ) from exc

        if place is None:
            raise PlaceCreationError("Failed to create place: No data returned")
        logger.info("Created place %s (%r)", place.id, place.name)
        return place, "created"

    async def create_or_get(self, data: PlaceInput) -> Place:
        """Return the matching catalog place, inserting one only when none exists."""
        place, _ = await self.create_or_get_with_method(data)
        return place
