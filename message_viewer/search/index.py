"""
Search corpus construction and match lookup.

The corpus holds one lowercased text blob per contact: name, raw phone,
normalized phone, last message, every message body (oldest first) and any extra
searchable terms, joined by newlines. It is rebuilt wholesale on every load.

Search is plain case-insensitive substring containment; there is no
tokenization, ranking or fuzzy matching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Sequence

from message_viewer.config import Config

if TYPE_CHECKING:
    from message_viewer.etl.aggregator import Contact, Message

FIELD_DELIMITER = "\n"
ELLIPSIS = "…"


@dataclass(frozen=True)
class CorpusEntry:
    """One contact's searchable text, as shipped to the search worker."""

    contact_id: str
    text: str


@dataclass(frozen=True)
class MatchLocation:
    """Where a query hit inside a contact's conversation."""

    contact_id: str
    message_id: int
    snippet: str
    matched: bool  # False when the snippet is the most-recent-message fallback


def normalize_query(query: Optional[str]) -> str:
    """Lowercase and trim a query; empty means "no filter"."""
    return (query or "").strip().lower()


def build_search_index(
    contacts: Iterable[Contact],
    messages_by_contact: Mapping[str, Sequence[Message]],
    searchable_terms: Optional[Mapping[str, Sequence[str]]] = None,
) -> Dict[str, str]:
    """
    Build the per-contact search corpus.

    Args:
        contacts: Aggregated contacts.
        messages_by_contact: ContactKey -> chronologically sorted messages.
        searchable_terms: ContactKey -> extra terms gathered during aggregation.

    Returns:
        Dict of ContactKey -> lowercased searchable text, in contact order.
    """
    searchable_terms = searchable_terms or {}
    index: Dict[str, str] = {}

    for contact in contacts:
        contact_id = contact.contact_id
        fields = [
            contact.name or "",
            contact.phone or "",
            contact.normalized_phone or "",
            contact.last_message or "",
        ]
        fields.extend(m.text or "" for m in messages_by_contact.get(contact_id, []))
        fields.extend(searchable_terms.get(contact_id, []))
        index[contact_id] = FIELD_DELIMITER.join(fields).lower()

    return index


def corpus_entries(index: Mapping[str, str]) -> List[CorpusEntry]:
    """Flatten an index into the list shape the worker's init message carries."""
    return [CorpusEntry(contact_id=k, text=v) for k, v in index.items()]


def search_corpus(entries: Iterable[CorpusEntry], query: Optional[str]) -> List[str]:
    """
    Return the ids of entries containing the query, in corpus order.

    An empty or whitespace-only query returns [] - callers treat that as
    "no filter", not as "nothing matched".
    """
    needle = normalize_query(query)
    if not needle:
        return []
    return [entry.contact_id for entry in entries if needle in entry.text]


def make_snippet(text: str, start: int, length: int, context: int = 20) -> str:
    """
    Cut a window of `context` characters around text[start:start+length].

    Ellipses mark either side that was truncated.
    """
    begin = max(0, start - context)
    end = min(len(text), start + length + context)
    prefix = ELLIPSIS if begin > 0 else ""
    suffix = ELLIPSIS if end < len(text) else ""
    return f"{prefix}{text[begin:end]}{suffix}"


def find_match(
    contact_id: str,
    messages: Sequence[Message],
    query: Optional[str],
    context: int = Config.DEFAULT_SNIPPET_CONTEXT,
    fallback_width: int = Config.DEFAULT_SNIPPET_FALLBACK_WIDTH,
) -> Optional[MatchLocation]:
    """
    Locate the first message (chronologically) containing the query.

    When the contact matched on name or phone but no message body contains
    the query, the most recent message is reported instead, truncated to
    `fallback_width` characters.

    Args:
        contact_id: ContactKey the messages belong to.
        messages: The contact's messages, oldest first.
        query: Raw query text.
        context: Characters of context on each side of the hit.
        fallback_width: Snippet width for the no-hit fallback.

    Returns:
        MatchLocation, or None for an empty query or a contact with no text.
    """
    needle = normalize_query(query)
    if not needle or not messages:
        return None

    for message in messages:
        if not message.text:
            continue
        position = message.text.lower().find(needle)
        if position >= 0:
            return MatchLocation(
                contact_id=contact_id,
                message_id=message.id,
                snippet=make_snippet(message.text, position, len(needle), context),
                matched=True,
            )

    latest = messages[-1]
    if not latest.text:
        return None
    text = latest.text
    snippet = text[:fallback_width] + ELLIPSIS if len(text) > fallback_width else text
    return MatchLocation(
        contact_id=contact_id,
        message_id=latest.id,
        snippet=snippet,
        matched=False,
    )


def find_matches(
    contact_ids: Iterable[str],
    messages_by_contact: Mapping[str, Sequence[Message]],
    query: Optional[str],
    config: Optional[Config] = None,
) -> Dict[str, MatchLocation]:
    """find_match for every matched contact; contacts without text are left out."""
    context = config.snippet_context if config else Config.DEFAULT_SNIPPET_CONTEXT
    width = config.snippet_fallback_width if config else Config.DEFAULT_SNIPPET_FALLBACK_WIDTH

    matches: Dict[str, MatchLocation] = {}
    for contact_id in contact_ids:
        location = find_match(
            contact_id,
            messages_by_contact.get(contact_id, []),
            query,
            context=context,
            fallback_width=width,
        )
        if location is not None:
            matches[contact_id] = location
    return matches
