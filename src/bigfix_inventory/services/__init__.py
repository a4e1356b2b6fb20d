"""Resource service implementations."""

from bigfix_inventory.services.actions import ActionService
from bigfix_inventory.services.computers import ComputerService
from bigfix_inventory.services.content import AnalysisService, FixletService, TaskService
from bigfix_inventory.services.properties import PropertyService
from bigfix_inventory.services.roles import RoleService
from bigfix_inventory.services.sites import SiteService

__all__ = [
    "ActionService",
    "AnalysisService",
    "ComputerService",
    "FixletService",
    "PropertyService",
    "RoleService",
    "SiteService",
    "TaskService",
]
