"""Read-only inventory of BigFix endpoint-management servers."""

from bigfix_inventory.client import BigFixClient
from bigfix_inventory.config import ConnectionConfig, load_connection_config
from bigfix_inventory.inventory import KINDS, Inventory

__version__ = "0.1.0"

__all__ = ["KINDS", "BigFixClient", "ConnectionConfig", "Inventory", "load_connection_config"]
