"""
Pytest fixtures for message viewer tests.

Fixture Categories:
    1. Record fixtures (unified rows, legacy rows, mixed exports)
    2. File fixtures (export JSON written to tmp_path)
    3. Isolation (global config reset between tests)

Design Notes:
    - Record builders return plain dicts, exactly as json.load would
    - Fixtures use tmp_path for isolation between tests
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from message_viewer.config import set_config


def pytest_configure(config):
    config.addinivalue_line("markers", "property: Hypothesis property-based tests")


def unified(
    record_id: str,
    party: str,
    timestamp: str,
    description: str = "hello",
    direction: str = "From",
    record_type: str = "SMS Messages",
    **extra: Any,
) -> Dict[str, Any]:
    """Build a unified-format record."""
    record = {
        "ID": record_id,
        "Type": record_type,
        "Direction": direction,
        "Attachments": "",
        "Locations": "",
        "Timestamp": timestamp,
        "Party": party,
        "Description": description,
        "Deleted": "",
    }
    record.update(extra)
    return record


def legacy(
    record_id: int,
    phone: Optional[str],
    date: str,
    time: str,
    message: Optional[str] = "hello",
    direction: str = "from",
    status: str = "Read",
    name: str = "",
    folder: str = "inbox",
) -> Dict[str, Any]:
    """Build a legacy-format record."""
    return {
        "id": record_id,
        "folder": folder,
        "party": {"direction": direction, "phone": phone, "name": name},
        "time": {"date": date, "time": time},
        "status": status,
        "message": message,
        "deleted": None,
    }


@pytest.fixture
def make_unified():
    """Factory for unified-format records."""
    return unified


@pytest.fixture
def make_legacy():
    """Factory for legacy-format records."""
    return legacy


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    """Keep the global Config and its env vars from leaking between tests."""
    monkeypatch.delenv("MESSAGE_VIEWER_EXPORT_PATH", raising=False)
    monkeypatch.delenv("MESSAGE_VIEWER_COUNTRY_PREFIX", raising=False)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def amy_records() -> List[Dict[str, Any]]:
    """The two-message conversation with Amy."""
    return [
        unified("1", "From: +9601234567 Amy", "01/01/2020 10:00:00(UTC+0)", "hi", "From"),
        unified("2", "To: +9601234567 Amy", "01/01/2020 10:05:00(UTC+0)", "hello", "To"),
    ]


@pytest.fixture
def mixed_records() -> List[Dict[str, Any]]:
    """A realistic mixed export: both schemas, a calendar row, a continuation."""
    return [
        legacy(1, "7781405", "13/06/2014", "21:15:08(UTC+5)", "Dinner tonight?", "from", "Unread", "Bob"),
        legacy(2, "+960 778-1405", "13/06/2014", "21:20:00(UTC+5)", "Sure, at 8", "to", "Sent"),
        unified("3", "From: +9601234567 Amy", "14/06/2014 09:00:00(UTC+0)", "Good morning", "From"),
        unified("4", "From:", "14/06/2014 09:00:30(UTC+0)", "part two of the message", ""),
        unified("5", "", "15/06/2014 12:00:00(UTC+0)", "Team meeting", "", "Calendar"),
        unified("6", "9609876543", "16/06/2014 18:30:00(UTC+0)", "", "", "Call Log"),
        unified("7", "To: 9609876543 Carol", "16/06/2014 18:45:00(UTC+0)", "Sorry I missed you", "To"),
        {"unexpected": "shape"},
    ]


@pytest.fixture
def export_file(tmp_path: Path, mixed_records) -> Path:
    """mixed_records written as a JSON export."""
    path = tmp_path / "export.json"
    path.write_text(json.dumps(mixed_records), encoding="utf-8")
    return path
