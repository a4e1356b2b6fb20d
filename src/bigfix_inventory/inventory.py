"""Inventory adapter: lists and reads BigFix entities by kind name.

Sits between the client and a presentation surface (the CLI, a query engine).
It fans site-scoped listings out across sites in parallel and decides which
errors mean "nothing there" and which must surface.
"""

from collections.abc import Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

import structlog

from bigfix_inventory.client import BigFixClient
from bigfix_inventory.errors import BigFixError, ValidationError, is_not_found
from bigfix_inventory.models import SiteFile, SitePermission, SiteRef
from bigfix_inventory.service import ResourceService, SiteScopedService, validate_site_type

logger = structlog.get_logger()

GLOBAL_KINDS = {
    "computer": "computers",
    "action": "actions",
    "property": "properties",
    "role": "roles",
}
SITE_SCOPED_KINDS = {
    "analysis": "analyses",
    "task": "tasks",
    "fixlet": "fixlets",
}
KINDS = ("computer", "site", *SITE_SCOPED_KINDS, "action", "property", "role")

DEFAULT_MAX_WORKERS = 8


class Inventory:
    """Kind-addressed access to a BigFix server."""

    def __init__(
        self,
        client: BigFixClient,
        ignore_error_messages: Iterable[str] = (),
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize the inventory.

        Args:
            client: Configured BigFix client
            ignore_error_messages: Extra error substrings treated as not-found
            max_workers: Parallel site fetches for site-scoped kinds
        """
        self.client = client
        self.ignore_error_messages = tuple(ignore_error_messages)
        self.max_workers = max(1, max_workers)

    @classmethod
    def from_client(cls, client: BigFixClient) -> "Inventory":
        """Build an inventory using the client's own connection settings."""
        return cls(
            client,
            ignore_error_messages=client.config.ignore_error_messages,
            max_workers=client.config.max_workers,
        )

    def is_not_found(self, exc: BaseException) -> bool:
        return is_not_found(exc, self.ignore_error_messages)

    def list(
        self,
        kind: str,
        site_name: str | None = None,
        site_type: str | None = None,
        detail: bool = False,
    ) -> Iterator[Any]:
        """Stream the entities of one kind.

        Args:
            kind: Entity kind, one of ``KINDS``
            site_name: Only include sites (or site content) with this name
            site_type: Only include sites (or site content) of this type
            detail: Replace each list item with its full detail

        Raises:
            ValidationError: unknown kind or site type
        """
        _check_kind(kind)
        if site_type is not None:
            validate_site_type(site_type)

        if kind == "site":
            return self._list_sites(site_name, site_type, detail)
        if kind in SITE_SCOPED_KINDS:
            return self._list_site_content(kind, site_name, site_type, detail)
        return self._list_global(kind, detail)

    def get(
        self,
        kind: str,
        id: int | None = None,
        site_name: str | None = None,
        site_type: str | None = None,
    ) -> Any | None:
        """Read one entity, or return None when it does not exist.

        Sites are addressed by ``site_name`` and ``site_type``; site content
        needs both plus ``id``; every other kind needs only ``id``.
        """
        _check_kind(kind)
        try:
            if kind == "site":
                return self.client.sites.get(_site_ref(site_name, site_type))
            if id is None:
                raise ValidationError(f"an id is required to get a {kind}")
            if kind in SITE_SCOPED_KINDS:
                return self._scoped_service(kind).get(_site_ref(site_name, site_type), id)
            return self._global_service(kind).get(id)
        except BigFixError as exc:
            if isinstance(exc, ValidationError) or not self.is_not_found(exc):
                raise
            logger.info("Entity not found", kind=kind, id=id, site_name=site_name, error=str(exc))
            return None

    def site_permissions(self, site_name: str, site_type: str) -> tuple[SitePermission, ...]:
        """Return the permissions of a site, or nothing if the site does not exist."""
        site = _site_ref(site_name, site_type)
        try:
            return self.client.sites.permissions(site)
        except BigFixError as exc:
            if isinstance(exc, ValidationError) or not self.is_not_found(exc):
                raise
            logger.info("Site not found", site_name=site_name, site_type=site_type)
            return ()

    def site_files(self, site_name: str, site_type: str) -> tuple[SiteFile, ...]:
        """Return the files of a site, or nothing if the site does not exist."""
        site = _site_ref(site_name, site_type)
        try:
            return self.client.sites.files(site)
        except BigFixError as exc:
            if isinstance(exc, ValidationError) or not self.is_not_found(exc):
                raise
            logger.info("Site not found", site_name=site_name, site_type=site_type)
            return ()

    def _global_service(self, kind: str) -> ResourceService[Any]:
        return getattr(self.client, GLOBAL_KINDS[kind])

    def _scoped_service(self, kind: str) -> SiteScopedService[Any]:
        return getattr(self.client, SITE_SCOPED_KINDS[kind])

    def _hydrate(self, kind: str, item: Any, fetch: Any) -> Any:
        """Swap a list item for its detail, keeping the item if the detail is gone."""
        try:
            return fetch()
        except BigFixError as exc:
            if not self.is_not_found(exc):
                raise
            logger.info("Detail not found, keeping list item", kind=kind, item=item.label)
            return item

    def _list_global(self, kind: str, detail: bool) -> Iterator[Any]:
        service = self._global_service(kind)
        for item in service.list():
            if detail:
                item = self._hydrate(kind, item, lambda: service.get(item.id))
            yield item

    def _list_sites(self, site_name: str | None, site_type: str | None, detail: bool) -> Iterator[Any]:
        for site in self.client.sites.list():
            if not _matches(site.ref, site_name, site_type):
                continue
            if detail:
                site = self._hydrate("site", site, lambda: self.client.sites.get(site.ref))
            yield site

    def _target_sites(self, site_name: str | None, site_type: str | None) -> tuple[SiteRef, ...]:
        """Resolve the sites to fan out over.

        A fully qualified site (or the single master site) is used as-is; any
        other filter is applied to the discovered site list.
        """
        if site_type == "master" or (site_name and site_type):
            return (SiteRef(name=site_name or "", type=site_type),)
        return tuple(site.ref for site in self.client.sites.list() if _matches(site.ref, site_name, site_type))

    def _fetch_site(self, kind: str, site: SiteRef, detail: bool) -> tuple[Any, ...]:
        service = self._scoped_service(kind)
        try:
            items = tuple(service.list(site))
        except BigFixError as exc:
            if not self.is_not_found(exc):
                raise
            logger.info("Site content not found", kind=kind, site_name=site.name, site_type=site.type)
            return ()

        if detail:
            items = tuple(self._hydrate(kind, item, lambda item=item: service.get(site, item.id)) for item in items)
        return items

    def _list_site_content(
        self, kind: str, site_name: str | None, site_type: str | None, detail: bool
    ) -> Iterator[Any]:
        sites = self._target_sites(site_name, site_type)
        logger.info("Listing site content", kind=kind, sites=len(sites), max_workers=self.max_workers)

        first_error: BaseException | None = None
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="bigfix")
        try:
            pending: set[Future[tuple[Any, ...]]] = {
                executor.submit(self._fetch_site, kind, site, detail) for site in sites
            }
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    exc = future.exception()
                    if exc is not None:
                        logger.warning("Site fetch failed", kind=kind, error=str(exc))
                        if first_error is None:
                            first_error = exc
                        continue
                    yield from future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        if first_error is not None:
            raise first_error


def _check_kind(kind: str) -> None:
    if kind not in KINDS:
        raise ValidationError(f"unknown kind: {kind}. Must be one of: {', '.join(KINDS)}")


def _site_ref(site_name: str | None, site_type: str | None) -> SiteRef:
    if not site_type:
        raise ValidationError("a site type is required")
    validate_site_type(site_type)
    if not site_name and site_type != "master":
        raise ValidationError(f"a site name is required for {site_type} sites")
    return SiteRef(name=site_name or "", type=site_type)


def _matches(site: SiteRef, site_name: str | None, site_type: str | None) -> bool:
    if site_name and site.name != site_name:
        return False
    if site_type and site.type != site_type:
        return False
    return True
