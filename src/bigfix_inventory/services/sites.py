"""Site service."""

from collections.abc import Iterator

import structlog

from bigfix_inventory.errors import EntityNotFoundError
from bigfix_inventory.models import Site, SiteFile, SitePermission, SiteRef
from bigfix_inventory.normalize import iter_site_files, iter_site_permissions, iter_sites, site_from_detail
from bigfix_inventory.service import BaseService, escape_site_name, validate_site_type

logger = structlog.get_logger()


def site_path(site: SiteRef) -> str:
    """Build the site detail path; ``master`` and ``action`` both read the master action site."""
    validate_site_type(site.type)
    if site.type in ("master", "action"):
        return "/api/site/master"
    return f"/api/site/{site.type}/{escape_site_name(site.name)}"


def site_subresource_path(site: SiteRef, subresource: str) -> str:
    """Build a permissions or files path; unlike the detail path, ``action`` keeps its own route."""
    validate_site_type(site.type)
    if site.type == "master":
        return f"/api/site/master/{subresource}"
    return f"/api/site/{site.type}/{escape_site_name(site.name)}/{subresource}"


class SiteService(BaseService):
    """Content sites: external, operator and the master action site."""

    kind = "site"

    def list(self) -> Iterator[Site]:
        """List external, operator and action sites."""
        logger.info("Listing sites")
        root = self._fetch("/api/sites", "list")
        count = 0
        for site in iter_sites(root):
            count += 1
            yield site
        logger.info("Listed sites", count=count)

    def get(self, site: SiteRef) -> Site:
        """Get the detail of one site.

        Raises:
            ValidationError: the site type is not recognized
            EntityNotFoundError: the response has no element for this site type
        """
        path = site_path(site)
        logger.info("Reading site", site_name=site.name, site_type=site.type)
        root = self._fetch(path, "get", site_name=site.name, site_type=site.type)

        detail = site_from_detail(root, site.type, resource=self.transport.resource_for(path))
        if detail is None:
            raise EntityNotFoundError(f"site {site.name} ({site.type}) not found").add_context(
                kind=self.kind, path=path
            )
        return detail

    def permissions(self, site: SiteRef) -> tuple[SitePermission, ...]:
        """Get the operator permissions of a site."""
        path = site_subresource_path(site, "permissions")
        root = self._fetch(path, "permissions", site_name=site.name, site_type=site.type)
        permissions = tuple(iter_site_permissions(root))
        logger.debug("Site permissions read", site_name=site.name, count=len(permissions))
        return permissions

    def files(self, site: SiteRef) -> tuple[SiteFile, ...]:
        """Get the files uploaded to a site."""
        path = site_subresource_path(site, "files")
        root = self._fetch(path, "files", site_name=site.name, site_type=site.type)
        files = tuple(iter_site_files(root))
        logger.debug("Site files read", site_name=site.name, count=len(files))
        return files
