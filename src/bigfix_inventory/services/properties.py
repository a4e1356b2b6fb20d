"""Retrieved property service."""

from collections.abc import Iterator

import structlog

from bigfix_inventory.models import Property
from bigfix_inventory.normalize import iter_properties, property_from_detail
from bigfix_inventory.service import ResourceService

logger = structlog.get_logger()


class PropertyService(ResourceService[Property]):
    """Retrieved property definitions."""

    kind = "property"

    def list(self) -> Iterator[Property]:
        logger.info("Listing properties")
        root = self._fetch("/api/properties", "list")
        count = 0
        for prop in iter_properties(root):
            count += 1
            yield prop
        logger.info("Listed properties", count=count)

    def get(self, id: int) -> Property:
        path = f"/api/property/{id}"
        logger.info("Reading property", id=id)
        root = self._fetch(path, "get", id=id)
        return property_from_detail(root, id, self.transport.resource_for(path))
