"""Operator role service."""

from collections.abc import Iterator

import structlog

from bigfix_inventory.models import Role
from bigfix_inventory.normalize import iter_roles, role_from_detail
from bigfix_inventory.service import ResourceService

logger = structlog.get_logger()


class RoleService(ResourceService[Role]):
    kind = "role"

    def list(self) -> Iterator[Role]:
        logger.info("Listing roles")
        root = self._fetch("/api/roles", "list")
        count = 0
        for role in iter_roles(root):
            count += 1
            yield role
        logger.info("Listed roles", count=count)

    def get(self, id: int) -> Role:
        path = f"/api/role/{id}"
        logger.info("Reading role", id=id)
        root = self._fetch(path, "get", id=id)
        return role_from_detail(root, id, self.transport.resource_for(path))
