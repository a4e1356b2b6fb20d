"""Data models for BigFix inventory entities."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

SITE_TYPES = ("external", "operator", "master", "action")


@dataclass(frozen=True)
class SiteRef:
    """Site reference scoping site-dependent entities."""

    name: str
    type: str


@dataclass(frozen=True)
class RawProperty:
    """One (name, value) pair from a server property bag."""

    name: str
    value: str = ""


@dataclass(frozen=True)
class NameValue:
    """Client setting split into name and value."""

    name: str
    value: str = ""


@dataclass(frozen=True)
class MIMEField:
    """MIME field attached to content."""

    name: str
    value: str = ""


@dataclass(frozen=True)
class Computer:
    """Represents a managed endpoint."""

    id: int
    resource: str = ""
    last_report_time: datetime | None = None
    name: str = ""
    os: str = ""
    cpu: str = ""
    ip_address: str = ""
    ipv6_address: str = ""
    dns_name: str = ""
    mac_address: str = ""
    os_family: str = ""
    os_name: str = ""
    os_version: str = ""
    user_name: str = ""
    ram: str = ""
    locked: str = ""
    bes_relay_selection: str = ""
    relay: str = ""
    distance_to_bes_relay: str = ""
    agent_type: str = ""
    device_type: str = ""
    agent_version: str = ""
    computer_type: str = ""
    license_type: str = ""
    free_space_on_system: str = ""
    total_size_of_system: str = ""
    bios: str = ""
    subnet_address: str = ""
    client_settings: tuple[NameValue, ...] = ()
    subscribed_sites: tuple[str, ...] = ()
    properties: tuple[RawProperty, ...] = ()
    extra_properties: tuple[RawProperty, ...] = ()

    @property
    def identity(self) -> tuple[str, int]:
        return ("computer", self.id)

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class Site:
    """Represents a content site."""

    name: str
    type: str
    resource: str = ""
    display_name: str = ""
    description: str = ""
    global_read_permission: bool | None = None
    subscription_mode: str = ""
    gather_url: str = ""

    @property
    def ref(self) -> SiteRef:
        return SiteRef(name=self.name, type=self.type)

    @property
    def identity(self) -> tuple[str, str, str]:
        return ("site", self.type, self.name)

    @property
    def label(self) -> str:
        return self.display_name or self.name


@dataclass(frozen=True)
class SitePermission:
    """Operator permission on a site."""

    permission: str
    operator_name: str = ""
    operator_resource: str = ""
    resource: str = ""


@dataclass(frozen=True)
class SiteFile:
    """File uploaded to a site."""

    id: int
    name: str = ""
    resource: str = ""
    last_modified: str = ""
    file_size: str = ""
    is_client_file: bool = False
    size: int = 0
    sha1: str = ""
    sha256: str = ""
    download_url: str = ""


@dataclass(frozen=True)
class AnalysisProperty:
    """Property defined by an analysis."""

    name: str
    id: str = ""
    evaluation_period: str = ""
    value: str = ""


@dataclass(frozen=True)
class ContentAction:
    """Action embedded in a task or fixlet."""

    id: str
    description: str = ""
    action_script: str = ""
    success_criteria: str = ""


@dataclass(frozen=True)
class SiteContent:
    """Fields shared by site-scoped content (analyses, tasks, fixlets)."""

    site: SiteRef
    id: int
    resource: str = ""
    name: str = ""
    title: str = ""
    last_modified: str = ""
    description: str = ""
    relevance: tuple[str, ...] = ()
    category: str = ""
    source: str = ""
    source_release_date: str = ""
    delay: str = ""
    mime_fields: tuple[MIMEField, ...] = ()

    kind = "content"

    @property
    def identity(self) -> tuple[str, str, int]:
        return (self.site.name, self.site.type, self.id)

    @property
    def label(self) -> str:
        return self.title or self.name


@dataclass(frozen=True)
class Analysis(SiteContent):
    """Represents an analysis."""

    properties: tuple[AnalysisProperty, ...] = ()

    kind = "analysis"


@dataclass(frozen=True)
class Task(SiteContent):
    """Represents a task."""

    download_size: int = 0
    source_id: str = ""
    source_severity: str = ""
    default_action: ContentAction | None = None
    actions: tuple[ContentAction, ...] = ()

    kind = "task"


@dataclass(frozen=True)
class Fixlet(SiteContent):
    """Represents a fixlet."""

    download_size: int = 0
    source_id: str = ""
    source_severity: str = ""
    cve_names: str = ""
    default_action: ContentAction | None = None
    actions: tuple[ContentAction, ...] = ()

    kind = "fixlet"


@dataclass(frozen=True)
class ActionSettings:
    """Execution settings of an action."""

    pre_action_show_ui: bool = False
    has_running_message: bool = False
    has_time_range: bool = False
    has_start_time: bool = False
    has_end_time: bool = False
    end_date_time_local_offset: str = ""
    has_day_of_week_constraint: bool = False
    use_utc_time: bool = False
    active_user_requirement: str = ""
    active_user_type: str = ""
    has_whose: bool = False
    pre_action_cache_download: bool = False
    reapply: bool = False
    has_reapply_limit: bool = False
    reapply_limit: int = 0
    has_reapply_interval: bool = False
    has_retry: bool = False
    has_temporal_distribution: bool = False
    continue_on_errors: bool = False
    post_action_behavior: str = ""
    is_offer: bool = False


@dataclass(frozen=True)
class ActionTarget:
    """Computers an action targets."""

    all_computers: bool = False
    computer_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class Action:
    """Represents an action."""

    id: int
    resource: str = ""
    name: str = ""
    title: str = ""
    last_modified: str = ""
    relevance: str = ""
    action_script: str = ""
    action_script_mime_type: str = ""
    success_criteria: str = ""
    settings: ActionSettings | None = None
    target: ActionTarget | None = None
    is_urgent: bool = False

    @property
    def identity(self) -> tuple[str, int]:
        return ("action", self.id)

    @property
    def label(self) -> str:
        return self.title or self.name


@dataclass(frozen=True)
class Property:
    """Represents a retrieved property definition."""

    id: int
    resource: str = ""
    name: str = ""
    last_modified: str = ""
    is_reserved: bool = False
    definition: str = ""

    @property
    def identity(self) -> tuple[str, int]:
        return ("property", self.id)

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class InterfaceLogins:
    """Interfaces a role may log in through."""

    console: bool = False
    web_ui: bool = False
    api: bool = False


@dataclass(frozen=True)
class Role:
    """Represents an operator role."""

    id: int
    resource: str = ""
    name: str = ""
    last_modified: str = ""
    master_operator: bool = False
    custom_content: bool = False
    show_other_actions: bool = False
    stop_other_actions: bool = False
    can_create_actions: bool = False
    post_action_behavior_privilege: str = ""
    action_script_commands_privilege: str = ""
    can_send_multiple_refresh: bool = False
    can_submit_queries: bool = False
    can_lock: bool = False
    unmanaged_asset_privilege: str = ""
    interface_logins: InterfaceLogins = field(default_factory=InterfaceLogins)

    @property
    def identity(self) -> tuple[str, int]:
        return ("role", self.id)

    @property
    def label(self) -> str:
        return self.name


def to_dict(entity: Any) -> dict[str, Any]:
    """Render an entity as a JSON-ready dictionary."""
    data = asdict(entity)
    return _jsonable(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
