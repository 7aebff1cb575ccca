"""
Contact aggregation for ETL.

Folds the raw export rows into a contact registry and per-contact message
lists. Aggregation is a single synchronous pass in input order, so the result
is deterministic for a given input.

Design Decisions:
    1. One contact per ContactKey: the normalized phone, or the raw phone when
       normalization yields nothing
    2. First-seen phone and name win; later rows never rename a contact
    3. last_message tracks the strictly newest row seen so far (ties keep the
       earlier row), independent of the final sort
    4. is_read only ever flips to False, and only for incoming unread rows
    5. Bad rows are skipped and counted, never raised
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional
import logging

from message_viewer.config import Config, get_config
from message_viewer.etl.extractors import (
    UNKNOWN_NAME,
    ExtractedRecord,
    ExtractionState,
    classify_record,
    extract_record,
)
from message_viewer.etl.normalizers import normalize_phone

logger = logging.getLogger(__name__)

MessageStatus = Literal["sent", "delivered", "read", "failed"]

FAILED_STATUSES = frozenset({"unsent", "failed", "error"})


@dataclass
class Message:
    """One message (or call) in a conversation."""

    id: int
    text: str
    timestamp: datetime
    is_from_me: bool
    is_read: bool
    status: MessageStatus
    is_call_log: bool = False


@dataclass
class Contact:
    """A conversation partner and its running aggregates."""

    phone: str
    name: str
    normalized_phone: str
    last_message: str
    last_message_time: datetime
    message_count: int = 1
    is_read: bool = True

    @property
    def contact_id(self) -> str:
        """The ContactKey this contact is registered under."""
        return self.normalized_phone or self.phone


@dataclass
class AggregationResult:
    """Output of aggregate_records."""

    contacts: List[Contact] = field(default_factory=list)
    messages_by_contact: Dict[str, List[Message]] = field(default_factory=dict)
    searchable_terms: Dict[str, List[str]] = field(default_factory=dict)
    records_seen: int = 0
    records_skipped: int = 0

    @property
    def message_count(self) -> int:
        return sum(len(messages) for messages in self.messages_by_contact.values())


def map_status(source_status: Any, is_from_me: bool) -> MessageStatus:
    """
    Map an export status value to a MessageStatus.

    Incoming:  read -> read, anything else -> delivered
    Outgoing:  sent -> delivered, read -> read,
               unsent/failed/error -> failed, anything else -> sent
    """
    status = str(source_status if source_status is not None else "").strip().lower()

    if not is_from_me:
        return "read" if status == "read" else "delivered"

    if status == "sent":
        return "delivered"
    if status == "read":
        return "read"
    if status in FAILED_STATUSES:
        return "failed"
    return "sent"


def contact_key(phone: str, normalized_phone: str) -> str:
    """ContactKey for a raw/normalized phone pair."""
    return normalized_phone or phone


def _build_message(extracted: ExtractedRecord) -> Message:
    return Message(
        id=extracted.record_id,
        text=extracted.text,
        timestamp=extracted.timestamp,
        is_from_me=extracted.is_from_me,
        is_read=extracted.is_read,
        status=map_status(extracted.source_status, extracted.is_from_me),
        is_call_log=extracted.is_call_log,
    )


def _fold_contact(
    contacts: Dict[str, Contact],
    key: str,
    extracted: ExtractedRecord,
    normalized_phone: str,
) -> None:
    existing = contacts.get(key)
    incoming_unread = not extracted.is_from_me and not extracted.is_read

    if existing is None:
        contacts[key] = Contact(
            phone=extracted.phone,
            name=extracted.name or UNKNOWN_NAME,
            normalized_phone=normalized_phone,
            last_message=extracted.text,
            last_message_time=extracted.timestamp,
            message_count=1,
            is_read=not incoming_unread,
        )
        return

    if extracted.timestamp > existing.last_message_time:
        existing.last_message = extracted.text
        existing.last_message_time = extracted.timestamp
    existing.message_count += 1
    if incoming_unread:
        existing.is_read = False


def aggregate_records(
    records: Iterable[Any],
    config: Optional[Config] = None,
) -> AggregationResult:
    """
    Fold raw export rows into contacts and conversations.

    Args:
        records: Raw rows in either schema (mixed is fine), in export order.
        config: Optional Config supplying phone normalization settings.

    Returns:
        AggregationResult with contacts sorted newest-first and every
        message list sorted oldest-first.
    """
    config = config or get_config()

    contacts: Dict[str, Contact] = {}
    messages_by_contact: Dict[str, List[Message]] = {}
    searchable_terms: Dict[str, List[str]] = {}
    state = ExtractionState()
    seen = 0
    skipped = 0

    for raw in records:
        seen += 1
        state.ordinal = seen

        record = classify_record(raw)
        extracted = extract_record(record, state) if record is not None else None
        if extracted is None:
            skipped += 1
            logger.debug(f"Skipping record #{seen}: unrecognized or incomplete")
            continue

        normalized_phone = normalize_phone(
            extracted.phone,
            country_prefix=config.country_prefix,
            local_length=config.local_number_length,
        )
        key = contact_key(extracted.phone, normalized_phone)

        messages_by_contact.setdefault(key, []).append(_build_message(extracted))
        searchable_terms.setdefault(key, []).extend(extracted.searchable_terms)
        _fold_contact(contacts, key, extracted, normalized_phone)

    # list.sort is stable: equal timestamps keep input order
    for messages in messages_by_contact.values():
        messages.sort(key=lambda m: m.timestamp)

    ordered = sorted(contacts.values(), key=lambda c: c.last_message_time, reverse=True)

    logger.info(
        f"Aggregated {seen - skipped} of {seen} records into {len(ordered)} contacts "
        f"({skipped} skipped)"
    )

    return AggregationResult(
        contacts=ordered,
        messages_by_contact=messages_by_contact,
        searchable_terms=searchable_terms,
        records_seen=seen,
        records_skipped=skipped,
    )
