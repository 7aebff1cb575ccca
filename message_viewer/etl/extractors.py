"""
ETL Extractors for message export records.

This module classifies raw export rows into one of the two known schemas and
pulls a uniform set of fields out of each, in a schema-defensive manner.

Supported Schemas:
    Legacy (SMS-only):
        {"id": 1, "folder": "inbox",
         "party": {"direction": "from", "phone": "7781405", "name": "Amy"},
         "time": {"date": "13/06/2014", "time": "21:15:08(UTC+0)"},
         "status": "Read", "message": "hi", "deleted": null}

    Unified (multi-type):
        {"ID": "1", "Type": "SMS Messages", "Direction": "From",
         "Timestamp": "13/06/2014 21:15:08(UTC+0)",
         "Party": "From: +9607781405 Amy", "Description": "hi",
         "Attachments": "", "Locations": "", "Deleted": ""}

Design Decisions:
    1. Schema detection is structural (which keys are present), never a tag
    2. Unusable rows yield None and are skipped by the caller, never raised
    3. Continuation rows ("From:" with nothing after it) belong to the most
       recently attributed party; that carry-over lives in ExtractionState,
       which the caller threads through a single pass
    4. Only SMS Messages, Instant Messages and Call Log rows are consumed
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Union
import logging

from message_viewer.etl.normalizers import parse_legacy_timestamp, parse_unified_timestamp

logger = logging.getLogger(__name__)

SMS_TYPE = "SMS Messages"
INSTANT_MESSAGE_TYPE = "Instant Messages"
CALL_LOG_TYPE = "Call Log"
SUPPORTED_TYPES = frozenset({SMS_TYPE, INSTANT_MESSAGE_TYPE, CALL_LOG_TYPE})

UNKNOWN_NAME = "Unknown"

# "From: <rest>" / "To: <rest>"
PARTY_PREFIX_PATTERN = re.compile(r"^\s*(From|To):(.*)$", re.DOTALL)
# "+960 778-1405 Amy Smith"
PHONE_THEN_NAME_PATTERN = re.compile(r"^(\+?\d[\d\s\-()]*\d)\s+(\D.*)$", re.DOTALL)
# "+9607781405"
PHONE_ONLY_PATTERN = re.compile(r"^\+?[\d\s\-()]*\d[\d\s\-()]*$")
# first run of 7-15 digits anywhere
EMBEDDED_PHONE_PATTERN = re.compile(r"\+?(?<!\d)\d{7,15}(?!\d)")
BARE_DIGITS_PATTERN = re.compile(r"^\s*\+?\d+\s*$")


def _optional_str(value: Any) -> Optional[str]:
    """None stays None; numbers and other scalars become their str()."""
    return str(value) if value is not None else None


@dataclass
class LegacyRecord:
    """Row from the older SMS-only export."""

    id: Any
    party_direction: str
    party_phone: Optional[str]
    party_name: Optional[str]
    date: Optional[str]
    time: Optional[str]
    status: Optional[str]
    message: Optional[str]
    folder: Optional[str] = None
    deleted: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "LegacyRecord":
        party = data.get("party") or {}
        time = data.get("time") or {}
        if not isinstance(party, dict):
            party = {}
        if not isinstance(time, dict):
            time = {}
        return cls(
            id=data.get("id"),
            party_direction=str(party.get("direction") or "").lower(),
            party_phone=_optional_str(party.get("phone")),
            party_name=_optional_str(party.get("name")),
            date=_optional_str(time.get("date")),
            time=_optional_str(time.get("time")),
            status=_optional_str(data.get("status")),
            message=_optional_str(data.get("message")),
            folder=_optional_str(data.get("folder")),
            deleted=_optional_str(data.get("deleted")),
        )


@dataclass
class UnifiedRecord:
    """Row from the newer multi-type export."""

    id: Any
    type: str
    direction: str
    timestamp: Optional[str]
    party: str
    description: str
    attachments: str = ""
    locations: str = ""
    deleted: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "UnifiedRecord":
        return cls(
            id=data.get("ID"),
            type=str(data.get("Type") or ""),
            direction=str(data.get("Direction") or ""),
            timestamp=data.get("Timestamp"),
            party=str(data.get("Party") or ""),
            description=str(data.get("Description") or ""),
            attachments=str(data.get("Attachments") or ""),
            locations=str(data.get("Locations") or ""),
            deleted=str(data.get("Deleted") or ""),
        )

    @property
    def is_call_log(self) -> bool:
        return self.type == CALL_LOG_TYPE


RawRecord = Union[LegacyRecord, UnifiedRecord]


@dataclass
class PartyInfo:
    """Phone/name pair parsed from a Party field."""

    phone: str
    name: str
    is_continuation: bool = False
    label: str = ""  # "From" or "To"; empty for bare call-log numbers


@dataclass
class ExtractedRecord:
    """Schema-independent view of one usable record."""

    record_id: int
    phone: str
    name: str
    text: str
    timestamp: datetime
    is_from_me: bool
    is_read: bool
    source_status: Optional[str]
    is_call_log: bool = False
    searchable_terms: List[str] = field(default_factory=list)


@dataclass
class ExtractionState:
    """
    Fold state carried across a single pass over the records.

    Attributes:
        last_party: Most recently attributed party, used for continuation rows.
        ordinal: 1-based position of the record being extracted.
    """

    last_party: Optional[PartyInfo] = None
    ordinal: int = 0


def classify_record(data: Any) -> Optional[RawRecord]:
    """
    Detect which schema a raw row uses.

    Args:
        data: One element of the export array.

    Returns:
        LegacyRecord, UnifiedRecord, or None if neither shape fits.
    """
    if not isinstance(data, dict):
        return None
    if "party" in data and "message" in data:
        return LegacyRecord.from_dict(data)
    if "Type" in data and ("Party" in data or "Description" in data or "ID" in data):
        return UnifiedRecord.from_dict(data)
    return None


def parse_party(party: str, is_call_log: bool = False) -> Optional[PartyInfo]:
    """
    Parse a unified-format Party field.

    Recognized shapes:
        "From: +9607781405 Amy"   -> phone then name
        "To: 7781405"             -> phone only
        "From: Amy (7781405)"     -> name with an embedded phone
        "From:" / "To: "          -> continuation of the previous party
        "7781405" (call logs)     -> bare number, name Unknown

    Args:
        party: Raw Party value.
        is_call_log: Whether the row is a Call Log entry.

    Returns:
        PartyInfo, or None if the field cannot be attributed.
    """
    if not party:
        return None

    match = PARTY_PREFIX_PATTERN.match(party)
    if not match:
        if is_call_log and BARE_DIGITS_PATTERN.match(party):
            return PartyInfo(phone=party.strip(), name=UNKNOWN_NAME)
        return None

    remainder = match.group(2).strip()
    if not remainder:
        return PartyInfo(phone="", name="", is_continuation=True, label=match.group(1))

    phone_name = PHONE_THEN_NAME_PATTERN.match(remainder)
    if phone_name and 7 <= len(re.sub(r"\D", "", phone_name.group(1))) <= 15:
        return PartyInfo(
            phone=phone_name.group(1).strip(),
            name=phone_name.group(2).strip(),
            label=match.group(1),
        )

    if PHONE_ONLY_PATTERN.match(remainder):
        return PartyInfo(phone=remainder, name=UNKNOWN_NAME, label=match.group(1))

    embedded = EMBEDDED_PHONE_PATTERN.search(remainder)
    if embedded:
        name = (remainder[: embedded.start()] + remainder[embedded.end() :]).strip(" ()-<>[],")
        return PartyInfo(phone=embedded.group(0), name=name or UNKNOWN_NAME, label=match.group(1))

    return None


def _parse_record_id(raw_id: Any, ordinal: int) -> int:
    try:
        return int(str(raw_id).strip())
    except (TypeError, ValueError):
        return ordinal


def _call_log_label(direction: str) -> str:
    if direction == "To":
        return "Outgoing call"
    if direction == "From":
        return "Incoming call"
    return "Call"


def _extract_unified(record: UnifiedRecord, state: ExtractionState) -> Optional[ExtractedRecord]:
    if record.type not in SUPPORTED_TYPES:
        return None
    if not record.is_call_log and not record.description.strip():
        return None

    party = parse_party(record.party, is_call_log=record.is_call_log)
    if party is None:
        logger.debug(f"Unattributable party on record {record.id!r}: {record.party!r}")
        return None

    if party.is_continuation:
        if state.last_party is None:
            logger.debug(f"Continuation record {record.id!r} has no prior party")
            return None
        attributed = state.last_party
        is_from_me = record.direction == "To" or party.label == "From"
    else:
        attributed = party
        is_from_me = record.direction == "To"
        state.last_party = party

    text = record.description
    if record.is_call_log and not text.strip():
        text = _call_log_label(record.direction)

    terms = [record.type]
    terms.extend(value for value in (record.attachments, record.locations) if value.strip())

    return ExtractedRecord(
        record_id=_parse_record_id(record.id, state.ordinal),
        phone=attributed.phone,
        name=attributed.name,
        text=text,
        timestamp=parse_unified_timestamp(record.timestamp),
        is_from_me=is_from_me,
        # no read/unread signal in this format
        is_read=True,
        source_status="read" if not is_from_me else None,
        is_call_log=record.is_call_log,
        searchable_terms=terms,
    )


def _extract_legacy(record: LegacyRecord, state: ExtractionState) -> Optional[ExtractedRecord]:
    if not record.party_phone or not record.message:
        return None

    terms = [record.folder] if record.folder else []

    return ExtractedRecord(
        record_id=_parse_record_id(record.id, state.ordinal),
        phone=str(record.party_phone),
        name=record.party_name or "",
        text=str(record.message),
        timestamp=parse_legacy_timestamp(record.date, record.time),
        is_from_me=record.party_direction == "to",
        is_read=record.status == "Read",
        source_status=record.status,
        searchable_terms=terms,
    )


def extract_record(record: RawRecord, state: ExtractionState) -> Optional[ExtractedRecord]:
    """
    Extract the uniform fields from one classified record.

    Args:
        record: LegacyRecord or UnifiedRecord.
        state: Fold state shared across the pass (mutated for unified rows).

    Returns:
        ExtractedRecord, or None if the record should be skipped.
    """
    match record:
        case UnifiedRecord():
            return _extract_unified(record, state)
        case LegacyRecord():
            return _extract_legacy(record, state)
        case _:
            raise TypeError(f"Unsupported record type: {type(record).__name__}")
