"""Site content services: analyses, tasks and fixlets."""

import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from typing import Generic

import structlog

from bigfix_inventory.models import Analysis, Fixlet, SiteRef, Task
from bigfix_inventory.normalize import (
    ContentT,
    analysis_from_detail,
    fixlet_from_detail,
    iter_content,
    task_from_detail,
)
from bigfix_inventory.service import SiteScopedService, scoped_path

logger = structlog.get_logger()


class SiteContentService(SiteScopedService[ContentT], Generic[ContentT]):
    """Shared list/get flow for content that lives inside a site."""

    entity: type[ContentT]
    list_collection: str
    get_collection: str
    element: str
    from_detail: Callable[[ET.Element, int, str, SiteRef], ContentT]

    def list(self, site: SiteRef) -> Iterator[ContentT]:
        """List the content of one site.

        The path is built, and the site type validated, before iteration starts.
        """
        path = scoped_path(self.list_collection, site)
        return self._stream(path, site)

    def _stream(self, path: str, site: SiteRef) -> Iterator[ContentT]:
        logger.info("Listing site content", kind=self.kind, site_name=site.name, site_type=site.type)
        root = self._fetch(path, "list", site_name=site.name, site_type=site.type)
        count = 0
        for item in iter_content(self.entity, root, self.element, site):
            count += 1
            yield item
        logger.info("Listed site content", kind=self.kind, site_name=site.name, count=count)

    def get(self, site: SiteRef, id: int) -> ContentT:
        """Get one item of site content with its full detail."""
        path = scoped_path(self.get_collection, site, id)
        logger.info("Reading site content", kind=self.kind, id=id, site_name=site.name, site_type=site.type)
        root = self._fetch(path, "get", id=id, site_name=site.name, site_type=site.type)
        return type(self).from_detail(root, id, self.transport.resource_for(path), site)


class AnalysisService(SiteContentService[Analysis]):
    kind = "analysis"
    entity = Analysis
    list_collection = "analyses"
    get_collection = "analysis"
    element = "Analysis"
    from_detail = staticmethod(analysis_from_detail)


class TaskService(SiteContentService[Task]):
    kind = "task"
    entity = Task
    list_collection = "tasks"
    get_collection = "task"
    element = "Task"
    from_detail = staticmethod(task_from_detail)


class FixletService(SiteContentService[Fixlet]):
    kind = "fixlet"
    entity = Fixlet
    list_collection = "fixlets"
    get_collection = "fixlet"
    element = "Fixlet"
    from_detail = staticmethod(fixlet_from_detail)
