"""CLI for bigfix-inventory."""

import json
import sys
from collections.abc import Iterable
from typing import Annotated, Any, Literal, NoReturn

import structlog
from cyclopts import App, Parameter

from bigfix_inventory.client import BigFixClient
from bigfix_inventory.config import get_config, load_connection_config
from bigfix_inventory.config_commands import config_app
from bigfix_inventory.errors import BigFixError
from bigfix_inventory.inventory import Inventory
from bigfix_inventory.models import to_dict

logger = structlog.get_logger()

app = App(
    name="bigfix-inventory",
    help="BigFix Inventory - read-only listing of BigFix server entities",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def get_inventory() -> Inventory:
    """Build an inventory from the stored connection settings."""
    settings = load_connection_config(get_config())
    return Inventory.from_client(BigFixClient(settings))


def _emit(entities: Iterable[Any]) -> int:
    count = 0
    for entity in entities:
        print(json.dumps(to_dict(entity), sort_keys=True))
        count += 1
    return count


def _fail(exc: Exception) -> NoReturn:
    print(f"Error: {exc}", file=sys.stderr)
    sys.exit(1)


@app.command(name="list")
def list_entities(
    kind: str,
    site_name: str | None = None,
    site_type: str | None = None,
    detail: bool = False,
) -> None:
    """List entities of one kind as JSON lines.

    Args:
        kind: computer, site, analysis, task, fixlet, action, property or role
        site_name: Only include this site
        site_type: Only include sites of this type (external, operator, master, action)
        detail: Fetch the full detail of every entity
    """
    try:
        inventory = get_inventory()
        count = _emit(inventory.list(kind, site_name=site_name, site_type=site_type, detail=detail))
    except (BigFixError, ValueError) as e:
        _fail(e)
    logger.info("Listed entities", kind=kind, count=count)


@app.command
def get(
    kind: str,
    id: int | None = None,
    site_name: str | None = None,
    site_type: str | None = None,
) -> None:
    """Read one entity as JSON.

    Args:
        kind: computer, site, analysis, task, fixlet, action, property or role
        id: Entity ID (not used for sites)
        site_name: Site of the entity, or the site itself
        site_type: Type of that site
    """
    try:
        entity = get_inventory().get(kind, id=id, site_name=site_name, site_type=site_type)
    except (BigFixError, ValueError) as e:
        _fail(e)
    if entity is None:
        print(f"{kind} not found", file=sys.stderr)
        sys.exit(1)
    _emit([entity])


@app.command
def permissions(site_name: str, site_type: str) -> None:
    """List the operator permissions of a site as JSON lines."""
    try:
        _emit(get_inventory().site_permissions(site_name, site_type))
    except (BigFixError, ValueError) as e:
        _fail(e)


@app.command
def files(site_name: str, site_type: str) -> None:
    """List the files of a site as JSON lines."""
    try:
        _emit(get_inventory().site_files(site_name, site_type))
    except (BigFixError, ValueError) as e:
        _fail(e)


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
