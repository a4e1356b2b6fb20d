"""Fold BigFix XML payloads into typed entities.

Each kind has two conversion paths that produce the same entity type:

- ``*_from_list_item`` for the sparse elements of a list response
- ``*_from_detail`` for the full element of a detail response

Missing or unknown optional fields never raise; only a payload that is not
well-formed XML does (``DecodeError``).
"""

import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime, timezone
from functools import partial
from typing import Any, TypeVar

import structlog

from bigfix_inventory.errors import DecodeError
from bigfix_inventory.models import (
    Action,
    ActionSettings,
    ActionTarget,
    Analysis,
    AnalysisProperty,
    Computer,
    ContentAction,
    Fixlet,
    InterfaceLogins,
    MIMEField,
    NameValue,
    Property,
    RawProperty,
    Role,
    Site,
    SiteContent,
    SiteFile,
    SitePermission,
    SiteRef,
    Task,
)

logger = structlog.get_logger()

ContentT = TypeVar("ContentT", bound=SiteContent)


def decode(body: bytes, kind: str) -> ET.Element:
    """Parse a response body into its root element.

    Raises:
        DecodeError: the body is not well-formed XML
    """
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise DecodeError(kind, len(body), str(exc)) from exc


# Element helpers


def _text(elem: ET.Element, tag: str) -> str:
    child = elem.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text


def _texts(elem: ET.Element, tag: str) -> tuple[str, ...]:
    return tuple(child.text or "" for child in elem.findall(tag))


def _int(value: str | None, default: int = 0) -> int:
    try:
        return int((value or "").strip())
    except ValueError:
        return default


def _bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("true", "1")


def _child(root: ET.Element, tag: str) -> ET.Element:
    """Return the named child, or an empty element so folding yields defaults."""
    child = root.find(tag)
    if child is None:
        logger.debug("Element missing from detail response", tag=tag, root=root.tag)
        return ET.Element(tag)
    return child


# Timestamps


def _rfc1123(value: str, numeric_zone: bool, padded_day: bool) -> datetime:
    head, _, zone = value.rpartition(" ")
    parts = head.split()
    if len(parts) < 2 or (padded_day and len(parts[1]) != 2):
        raise ValueError(f"day field does not match layout: {value!r}")

    if numeric_zone:
        return datetime.strptime(value, "%a, %d %b %Y %H:%M:%S %z")

    # Zone abbreviations carry no offset; they are read as UTC.
    if not zone.isalpha():
        raise ValueError(f"expected a zone name: {value!r}")
    return datetime.strptime(head, "%a, %d %b %Y %H:%M:%S").replace(tzinfo=timezone.utc)


def _rfc3339(value: str, fractional: bool) -> datetime:
    _, sep, time_part = value.partition("T")
    if not sep or (fractional and "." not in time_part):
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"RFC 3339 timestamp without offset: {value!r}")
    return parsed


def _ansic(value: str) -> datetime:
    return datetime.strptime(value, "%a %b %d %H:%M:%S %Y").replace(tzinfo=timezone.utc)


# Tried in order; the first layout that parses wins.
TIMESTAMP_LAYOUTS: tuple[tuple[str, Callable[[str], datetime]], ...] = (
    ("numeric-offset", partial(_rfc1123, numeric_zone=True, padded_day=False)),
    ("numeric-offset-padded", partial(_rfc1123, numeric_zone=True, padded_day=True)),
    ("rfc1123z", partial(_rfc1123, numeric_zone=True, padded_day=True)),
    ("rfc1123", partial(_rfc1123, numeric_zone=False, padded_day=True)),
    ("named-zone", partial(_rfc1123, numeric_zone=False, padded_day=False)),
    ("rfc3339", partial(_rfc3339, fractional=False)),
    ("rfc3339-fractional", partial(_rfc3339, fractional=True)),
    ("ansic", _ansic),
)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a server timestamp, returning None when no layout matches."""
    if not value or not value.strip():
        return None

    value = value.strip()
    for _name, parser in TIMESTAMP_LAYOUTS:
        try:
            return parser(value)
        except ValueError:
            continue

    logger.debug("Unparseable timestamp", value=value)
    return None


# Computers

# Property names are matched exactly as the server sends them.
COMPUTER_PROPERTY_FIELDS: dict[str, str] = {
    "Computer Name": "name",
    "OS": "os",
    "CPU": "cpu",
    "IP Address": "ip_address",
    "IPv6 Address": "ipv6_address",
    "DNS Name": "dns_name",
    "MAC Address": "mac_address",
    "OS Family": "os_family",
    "OS Name": "os_name",
    "OS Version": "os_version",
    "User Name": "user_name",
    "RAM": "ram",
    "Locked": "locked",
    "BES Relay Selection Method": "bes_relay_selection",
    "Relay": "relay",
    "Distance to BES Relay": "distance_to_bes_relay",
    "Agent Type": "agent_type",
    "Device Type": "device_type",
    "Agent Version": "agent_version",
    "Computer Type": "computer_type",
    "License Type": "license_type",
    "Free Space on System Drive": "free_space_on_system",
    "Total Size of System Drive": "total_size_of_system",
    "BIOS": "bios",
    "Subnet Address": "subnet_address",
}


def parse_client_setting(value: str) -> NameValue:
    """Split a client setting on its first ``=``.

    Without a separator the whole value is the name and the value is empty.
    """
    name, sep, setting_value = value.partition("=")
    if not sep:
        return NameValue(name=value, value="")
    return NameValue(name=name, value=setting_value)


def property_bag(elem: ET.Element) -> tuple[RawProperty, ...]:
    """Read the ordered ``<Property Name="...">value</Property>`` pairs of an element."""
    return tuple(RawProperty(name=prop.get("Name", ""), value=prop.text or "") for prop in elem.findall("Property"))


def fold_computer_properties(
    properties: Iterable[RawProperty],
    id: int | None = None,
    resource: str = "",
) -> Computer:
    """Fold a computer property bag into a Computer.

    Args:
        properties: Ordered (name, value) pairs
        id: Computer ID known from the request; wins over an "ID" property
        resource: Resource URL of the computer
    """
    bag = tuple(properties)
    fields: dict[str, Any] = {}
    client_settings: list[NameValue] = []
    subscribed_sites: list[str] = []
    extra: list[RawProperty] = []
    bag_id: int | None = None

    for prop in bag:
        name, value = prop.name, prop.value
        if name in COMPUTER_PROPERTY_FIELDS:
            fields[COMPUTER_PROPERTY_FIELDS[name]] = value
        elif name == "ID":
            parsed = _int(value)
            if parsed and bag_id is None:
                bag_id = parsed
        elif name == "Last Report Time":
            fields["last_report_time"] = parse_timestamp(value)
        elif name == "Client Settings":
            setting = parse_client_setting(value)
            if setting.name:
                client_settings.append(setting)
        elif name == "Subscribed Sites":
            subscribed_sites.append(value)
        else:
            extra.append(prop)

    if id is not None and bag_id is not None and bag_id != id:
        logger.warning("Ignoring conflicting computer ID property", requested_id=id, property_id=bag_id)

    return Computer(
        id=id if id is not None else (bag_id or 0),
        resource=resource,
        client_settings=tuple(client_settings),
        subscribed_sites=tuple(subscribed_sites),
        properties=bag,
        extra_properties=tuple(extra),
        **fields,
    )


def computer_from_list_item(elem: ET.Element) -> Computer:
    """Convert a ``<Computer>`` element of the computer list."""
    return Computer(
        id=_int(_text(elem, "ID")),
        resource=elem.get("Resource", ""),
        name=_text(elem, "Name"),
        os=_text(elem, "OS"),
        cpu=_text(elem, "CPU"),
        ip_address=_text(elem, "IPAddress"),
        last_report_time=parse_timestamp(_text(elem, "LastReportTime")),
    )


def computer_from_detail(root: ET.Element, id: int | None = None, resource: str = "") -> Computer:
    """Convert a computer detail response (``<BESAPI><Computer>``)."""
    elem = _child(root, "Computer")
    return fold_computer_properties(property_bag(elem), id=id, resource=resource or elem.get("Resource", ""))


def iter_computers(root: ET.Element) -> Iterator[Computer]:
    for elem in root.findall("Computer"):
        yield computer_from_list_item(elem)


# Sites

SITE_LIST_TAGS = (("ExternalSite", "external"), ("OperatorSite", "operator"), ("ActionSite", "action"))
SITE_DETAIL_TAGS = {"external": "ExternalSite", "operator": "OperatorSite", "master": "ActionSite", "action": "ActionSite"}


def site_from_list_item(elem: ET.Element, site_type: str) -> Site:
    """Convert an ``<ExternalSite>``, ``<OperatorSite>`` or ``<ActionSite>`` list element."""
    return Site(
        name=_text(elem, "Name"),
        type=site_type,
        resource=elem.get("Resource", ""),
        display_name=_text(elem, "DisplayName"),
        gather_url=_text(elem, "GatherURL"),
    )


def iter_sites(root: ET.Element) -> Iterator[Site]:
    """Yield external, then operator, then action sites of a site list."""
    for tag, site_type in SITE_LIST_TAGS:
        for elem in root.findall(tag):
            yield site_from_list_item(elem, site_type)


def site_from_detail(root: ET.Element, site_type: str, resource: str = "") -> Site | None:
    """Convert a site detail response, or return None if the site element is absent."""
    tag = SITE_DETAIL_TAGS.get(site_type)
    elem = root.find(tag) if tag else None
    if elem is None:
        return None

    return Site(
        name=_text(elem, "Name"),
        type="action" if tag == "ActionSite" else site_type,
        resource=resource,
        display_name=_text(elem, "DisplayName"),
        description=_text(elem, "Description"),
        global_read_permission=_text(elem, "GlobalReadPermission") == "true",
        subscription_mode=_text(elem, "Subscription/Mode"),
        gather_url=_text(elem, "GatherURL"),
    )


def iter_site_permissions(root: ET.Element) -> Iterator[SitePermission]:
    for elem in root.findall("SitePermission"):
        operator = _child(elem, "Operator")
        yield SitePermission(
            permission=_text(elem, "Permission"),
            operator_name=(operator.text or "").strip(),
            operator_resource=operator.get("Resource", ""),
            resource=elem.get("Resource", ""),
        )


def iter_site_files(root: ET.Element) -> Iterator[SiteFile]:
    for elem in root.findall("SiteFile"):
        yield SiteFile(
            id=_int(_text(elem, "ID")),
            name=_text(elem, "Name"),
            resource=elem.get("Resource", ""),
            last_modified=_text(elem, "LastModified"),
            file_size=_text(elem, "FileSize"),
            is_client_file=_bool(_text(elem, "IsClientFile")),
            size=_int(elem.get("Size")),
            sha1=elem.get("SHA1", ""),
            sha256=elem.get("SHA256", ""),
            download_url=(elem.text or "").strip(),
        )


# Site content: analyses, tasks, fixlets


def content_from_list_item(cls: type[ContentT], elem: ET.Element, site: SiteRef) -> ContentT:
    """Convert a list element of site content; the title falls back to the name."""
    name = _text(elem, "Name")
    return cls(
        site=site,
        id=_int(_text(elem, "ID")),
        resource=elem.get("Resource", ""),
        name=name,
        title=name,
        last_modified=elem.get("LastModified", ""),
    )


def iter_content(cls: type[ContentT], root: ET.Element, tag: str, site: SiteRef) -> Iterator[ContentT]:
    for elem in root.findall(tag):
        yield content_from_list_item(cls, elem, site)


def _content_fields(elem: ET.Element) -> dict[str, Any]:
    title = _text(elem, "Title")
    return {
        "name": title,
        "title": title,
        "description": _text(elem, "Description"),
        "relevance": _texts(elem, "Relevance"),
        "category": _text(elem, "Category"),
        "source": _text(elem, "Source"),
        "source_release_date": _text(elem, "SourceReleaseDate"),
        "delay": _text(elem, "Delay"),
        "mime_fields": tuple(
            MIMEField(name=_text(field, "Name"), value=_text(field, "Value")) for field in elem.findall("MIMEField")
        ),
    }


def _content_action(elem: ET.Element) -> ContentAction:
    return ContentAction(
        id=elem.get("ID", ""),
        description=_text(elem, "Description"),
        action_script=_text(elem, "ActionScript"),
        success_criteria=_text(elem, "SuccessCriteria"),
    )


def _actionable_fields(elem: ET.Element) -> dict[str, Any]:
    default_action = elem.find("DefaultAction")
    return {
        "download_size": _int(_text(elem, "DownloadSize")),
        "source_id": _text(elem, "SourceID"),
        "source_severity": _text(elem, "SourceSeverity"),
        "default_action": _content_action(default_action) if default_action is not None else None,
        "actions": tuple(_content_action(action) for action in elem.findall("Action")),
    }


def analysis_from_detail(root: ET.Element, id: int, resource: str, site: SiteRef) -> Analysis:
    """Convert an analysis detail response (``<BES><Analysis>``)."""
    elem = _child(root, "Analysis")
    properties = tuple(
        AnalysisProperty(
            name=prop.get("Name", ""),
            id=prop.get("ID", ""),
            evaluation_period=prop.get("EvaluationPeriod", ""),
            value=prop.text or "",
        )
        for prop in elem.findall("Property")
    )
    return Analysis(site=site, id=id, resource=resource, properties=properties, **_content_fields(elem))


def task_from_detail(root: ET.Element, id: int, resource: str, site: SiteRef) -> Task:
    """Convert a task detail response (``<BES><Task>``)."""
    elem = _child(root, "Task")
    return Task(site=site, id=id, resource=resource, **_content_fields(elem), **_actionable_fields(elem))


def fixlet_from_detail(root: ET.Element, id: int, resource: str, site: SiteRef) -> Fixlet:
    """Convert a fixlet detail response (``<BES><Fixlet>``)."""
    elem = _child(root, "Fixlet")
    return Fixlet(
        site=site,
        id=id,
        resource=resource,
        cve_names=_text(elem, "CVENames"),
        **_content_fields(elem),
        **_actionable_fields(elem),
    )


# Actions

ACTION_SETTING_BOOLS = {
    "PreActionShowUI": "pre_action_show_ui",
    "HasRunningMessage": "has_running_message",
    "HasTimeRange": "has_time_range",
    "HasStartTime": "has_start_time",
    "HasEndTime": "has_end_time",
    "HasDayOfWeekConstraint": "has_day_of_week_constraint",
    "UseUTCTime": "use_utc_time",
    "HasWhose": "has_whose",
    "PreActionCacheDownload": "pre_action_cache_download",
    "Reapply": "reapply",
    "HasReapplyLimit": "has_reapply_limit",
    "HasReapplyInterval": "has_reapply_interval",
    "HasRetry": "has_retry",
    "HasTemporalDistribution": "has_temporal_distribution",
    "ContinueOnErrors": "continue_on_errors",
    "IsOffer": "is_offer",
}

ACTION_SETTING_TEXTS = {
    "EndDateTimeLocalOffset": "end_date_time_local_offset",
    "ActiveUserRequirement": "active_user_requirement",
    "ActiveUserType": "active_user_type",
}


def _action_settings(elem: ET.Element) -> ActionSettings:
    fields: dict[str, Any] = {field: _bool(_text(elem, tag)) for tag, field in ACTION_SETTING_BOOLS.items()}
    fields.update({field: _text(elem, tag) for tag, field in ACTION_SETTING_TEXTS.items()})
    post_action = elem.find("PostActionBehavior")
    return ActionSettings(
        reapply_limit=_int(_text(elem, "ReapplyLimit")),
        post_action_behavior=post_action.get("Behavior", "") if post_action is not None else "",
        **fields,
    )


def action_from_list_item(elem: ET.Element) -> Action:
    """Convert an ``<Action>`` element of the action list; the title falls back to the name."""
    name = _text(elem, "Name")
    return Action(
        id=_int(_text(elem, "ID")),
        resource=elem.get("Resource", ""),
        name=name,
        title=name,
        last_modified=elem.get("LastModified", ""),
    )


def iter_actions(root: ET.Element) -> Iterator[Action]:
    for elem in root.findall("Action"):
        yield action_from_list_item(elem)


def action_from_detail(root: ET.Element, id: int, resource: str) -> Action:
    """Convert an action detail response (``<BES><SingleAction>``)."""
    elem = _child(root, "SingleAction")
    script = _child(elem, "ActionScript")
    settings = elem.find("Settings")
    target = elem.find("Target")
    title = _text(elem, "Title")

    return Action(
        id=id,
        resource=resource,
        name=title,
        title=title,
        relevance=_text(elem, "Relevance"),
        action_script=script.text or "",
        action_script_mime_type=script.get("MIMEType", ""),
        success_criteria=_text(elem, "SuccessCriteria"),
        settings=_action_settings(settings) if settings is not None else None,
        target=(
            ActionTarget(
                all_computers=_bool(_text(target, "AllComputers")),
                computer_ids=tuple(_int(value) for value in _texts(target, "ComputerID")),
            )
            if target is not None
            else None
        ),
        is_urgent=_bool(_text(elem, "IsUrgent")),
    )


# Properties


def property_from_list_item(elem: ET.Element) -> Property:
    return Property(
        id=_int(_text(elem, "ID")),
        resource=elem.get("Resource", ""),
        name=_text(elem, "Name"),
        last_modified=elem.get("LastModified", ""),
        is_reserved=_bool(_text(elem, "IsReserved")),
    )


def iter_properties(root: ET.Element) -> Iterator[Property]:
    for elem in root.findall("Property"):
        yield property_from_list_item(elem)


def property_from_detail(root: ET.Element, id: int, resource: str) -> Property:
    """Convert a property detail response (``<BES><Property Name="...">relevance</Property>``).

    The detail response does not say whether the property is reserved.
    """
    elem = _child(root, "Property")
    return Property(id=id, resource=resource, name=elem.get("Name", ""), definition=elem.text or "")


# Roles

ROLE_FLAGS = {
    "MasterOperator": "master_operator",
    "CustomContent": "custom_content",
    "ShowOtherActions": "show_other_actions",
    "StopOtherActions": "stop_other_actions",
    "CanCreateActions": "can_create_actions",
    "CanSendMultipleRefresh": "can_send_multiple_refresh",
    "CanSubmitQueries": "can_submit_queries",
    "CanLock": "can_lock",
}

ROLE_TEXTS = {
    "PostActionBehaviorPrivilege": "post_action_behavior_privilege",
    "ActionScriptCommandsPrivilege": "action_script_commands_privilege",
    "UnmanagedAssetPrivilege": "unmanaged_asset_privilege",
}


def _role_fields(elem: ET.Element) -> dict[str, Any]:
    fields: dict[str, Any] = {field: _bool(_text(elem, tag)) for tag, field in ROLE_FLAGS.items()}
    fields.update({field: _text(elem, tag) for tag, field in ROLE_TEXTS.items()})
    logins = _child(elem, "InterfaceLogins")
    fields["interface_logins"] = InterfaceLogins(
        console=_bool(_text(logins, "Console")),
        web_ui=_bool(_text(logins, "WebUI")),
        api=_bool(_text(logins, "API")),
    )
    return fields


def role_from_list_item(elem: ET.Element) -> Role:
    return Role(
        id=_int(_text(elem, "ID")),
        resource=elem.get("Resource", ""),
        name=_text(elem, "Name"),
        last_modified=elem.get("LastModified", ""),
        **_role_fields(elem),
    )


def iter_roles(root: ET.Element) -> Iterator[Role]:
    for elem in root.findall("Role"):
        yield role_from_list_item(elem)


def role_from_detail(root: ET.Element, id: int, resource: str) -> Role:
    """Convert a role detail response (``<BESAPI><Role>``), which has the list shape."""
    elem = _child(root, "Role")
    return Role(
        id=id,
        resource=resource,
        name=_text(elem, "Name"),
        last_modified=elem.get("LastModified", ""),
        **_role_fields(elem),
    )
