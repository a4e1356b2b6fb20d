"""Action service."""

from collections.abc import Iterator

import structlog

from bigfix_inventory.models import Action
from bigfix_inventory.normalize import action_from_detail, iter_actions
from bigfix_inventory.service import ResourceService

logger = structlog.get_logger()


class ActionService(ResourceService[Action]):
    """Actions issued on the server. The API reports no site for them."""

    kind = "action"

    def list(self) -> Iterator[Action]:
        logger.info("Listing actions")
        root = self._fetch("/api/actions", "list")
        count = 0
        for action in iter_actions(root):
            count += 1
            yield action
        logger.info("Listed actions", count=count)

    def get(self, id: int) -> Action:
        path = f"/api/action/{id}"
        logger.info("Reading action", id=id)
        root = self._fetch(path, "get", id=id)
        return action_from_detail(root, id, self.transport.resource_for(path))
