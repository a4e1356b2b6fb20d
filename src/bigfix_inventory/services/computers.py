"""Computer service."""

from collections.abc import Iterator
from urllib.parse import urlencode

import structlog

from bigfix_inventory.models import Computer
from bigfix_inventory.normalize import computer_from_detail, iter_computers
from bigfix_inventory.service import ResourceService

logger = structlog.get_logger()

LIST_FIELDS = "ID,Name,OS,LastReportTime,CPU,IPAddress"


class ComputerService(ResourceService[Computer]):
    """Managed endpoints known to the server."""

    kind = "computer"

    def list(self) -> Iterator[Computer]:
        """List computers with the summary fields of the list endpoint."""
        path = "/api/computers?" + urlencode({"fields": LIST_FIELDS})
        logger.info("Listing computers")
        root = self._fetch(path, "list")
        count = 0
        for computer in iter_computers(root):
            count += 1
            yield computer
        logger.info("Listed computers", count=count)

    def get(self, id: int) -> Computer:
        """Get a computer with its full property bag."""
        # A bare "fields" parameter asks for every property.
        path = f"/api/computer/{id}?fields"
        logger.info("Reading computer", id=id)
        root = self._fetch(path, "get", id=id)
        computer = computer_from_detail(root, id=id, resource=self.transport.resource_for(path))
        logger.debug("Computer read successfully", id=id, properties=len(computer.properties))
        return computer
