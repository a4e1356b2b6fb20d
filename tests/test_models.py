"""Tests for data models."""

from datetime import datetime, timezone

from bigfix_inventory.models import Analysis, Computer, NameValue, Site, SiteRef, Task, to_dict


def test_computer_defaults() -> None:
    """Test computer creation with defaults."""
    computer = Computer(id=1)
    assert computer.name == ""
    assert computer.last_report_time is None
    assert computer.client_settings == ()
    assert computer.identity == ("computer", 1)


def test_site_label_prefers_display_name() -> None:
    """Test the site label uses the display name when present."""
    assert Site(name="BES Support", type="external", display_name="Support").label == "Support"
    assert Site(name="alice", type="operator").ref == SiteRef("alice", "operator")


def test_content_kind_and_identity() -> None:
    """Test site content is identified by site and ID."""
    site = SiteRef("BES Support", "external")
    task = Task(site=site, id=5, name="Restart")

    assert task.kind == "task"
    assert Analysis.kind == "analysis"
    assert task.identity == ("BES Support", "external", 5)
    assert task.label == "Restart"


def test_to_dict_is_json_ready() -> None:
    """Test entities render with ISO timestamps and plain lists."""
    computer = Computer(
        id=1,
        last_report_time=datetime(2006, 1, 2, 22, 4, 5, tzinfo=timezone.utc),
        client_settings=(NameValue("a", "b"),),
    )

    data = to_dict(computer)

    assert data["last_report_time"] == "2006-01-02T22:04:05+00:00"
    assert data["client_settings"] == [{"name": "a", "value": "b"}]
