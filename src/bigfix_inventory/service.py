"""Resource service interface shared by every BigFix entity kind."""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any, Generic, TypeVar
from urllib.parse import quote

import structlog

from bigfix_inventory.errors import BigFixError, ValidationError
from bigfix_inventory.models import SITE_TYPES, SiteRef
from bigfix_inventory.normalize import decode
from bigfix_inventory.retry import RetryEngine
from bigfix_inventory.transport import Transport

logger = structlog.get_logger()

EntityT = TypeVar("EntityT")


def validate_site_type(site_type: str, allowed: Iterable[str] = SITE_TYPES) -> None:
    """Reject an unrecognized site-type token before any request is made."""
    allowed = tuple(allowed)
    if site_type not in allowed:
        raise ValidationError(f"invalid site type: {site_type}. Must be one of: {', '.join(allowed)}")


def escape_site_name(name: str) -> str:
    """Percent-encode a site name for use as one path segment."""
    return quote(name, safe="")


def scoped_path(collection: str, site: SiteRef, id: int | None = None) -> str:
    """Build ``/api/{collection}/{type}/{name}[/{id}]``.

    The master action site has a single instance, so its paths carry no name.
    """
    validate_site_type(site.type)
    if site.type == "master":
        path = f"/api/{collection}/master"
    else:
        path = f"/api/{collection}/{site.type}/{escape_site_name(site.name)}"
    if id is not None:
        path += f"/{id}"
    return path


class BaseService:
    """Request plumbing shared by all services: retry, decode, error context."""

    kind = "entity"

    def __init__(self, transport: Transport, engine: RetryEngine) -> None:
        self.transport = transport
        self.engine = engine

    def _tag(self, operation: str) -> str:
        return f"bigfix_{self.kind}_{operation}"

    def _fetch(self, path: str, operation: str, **context: Any) -> ET.Element:
        """Fetch ``path`` through the retry engine and decode the XML body.

        Every surfaced error carries the kind, path and any extra context.
        """
        tag = self._tag(operation)
        try:
            response = self.engine.execute(lambda: self.transport.get(path, tag), tag=tag)
            return decode(response.content, self.kind)
        except BigFixError as exc:
            exc.add_context(kind=self.kind, path=path, **context)
            logger.debug("Fetch failed", kind=self.kind, path=path, error=str(exc))
            raise


class ResourceService(BaseService, ABC, Generic[EntityT]):
    """Service for a server-wide entity kind."""

    @abstractmethod
    def list(self) -> Iterator[EntityT]:
        """List entities as a lazy, one-shot iterator."""
        pass

    @abstractmethod
    def get(self, id: int) -> EntityT:
        """Get one entity by ID."""
        pass


class SiteScopedService(BaseService, ABC, Generic[EntityT]):
    """Service for an entity kind that lives inside a site."""

    @abstractmethod
    def list(self, site: SiteRef) -> Iterator[EntityT]:
        """List the entities of one site as a lazy, one-shot iterator."""
        pass

    @abstractmethod
    def get(self, site: SiteRef, id: int) -> EntityT:
        """Get one entity of a site by ID."""
        pass

    def list_for_sites(self, sites: Iterable[SiteRef]) -> Iterator[EntityT]:
        """List entities across a caller-supplied stream of sites, in order."""
        for site in sites:
            yield from self.list(site)
