"""
FastAPI backend for the message viewer.

Serves contacts, conversations and search results for one export file. The
export named by MESSAGE_VIEWER_EXPORT_PATH is loaded on first use and kept in
memory; searches go through the background search worker.

Run with:
    MESSAGE_VIEWER_EXPORT_PATH=export.json uvicorn message_viewer.api:app
"""

from __future__ import annotations

import os
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from message_viewer.config import get_config
from message_viewer.etl.aggregator import Contact, Message
from message_viewer.etl.pipeline import ETLResult, ExportFormatError, run_etl_from_file
from message_viewer.search.index import find_matches, normalize_query
from message_viewer.search.worker import SearchClient
from message_viewer.utils import get_contact_display_name

logger = logging.getLogger(__name__)


@dataclass
class ViewerState:
    """A loaded export and the search client serving it."""

    path: Path
    result: ETLResult
    client: SearchClient


_state: Optional[ViewerState] = None
_state_lock = threading.Lock()


def _get_export_path() -> Optional[Path]:
    """Get the path to the export file."""
    value = os.getenv("MESSAGE_VIEWER_EXPORT_PATH")
    return Path(value) if value else None


def _get_state() -> ViewerState:
    """
    Load the export (once per path) and start its search client.

    Raises HTTPException(503) if no usable export is configured.
    """
    global _state
    path = _get_export_path()
    if path is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "export not configured",
                "message": "Set MESSAGE_VIEWER_EXPORT_PATH to a JSON export file",
            },
        )

    with _state_lock:
        if _state is not None and _state.path == path:
            return _state

        config = get_config()
        try:
            result = run_etl_from_file(path, config)
        except ExportFormatError as e:
            raise HTTPException(
                status_code=503,
                detail={"error": "export unavailable", "message": str(e), "path": str(path)},
            ) from e

        if _state is not None:
            _state.client.close()
        client = SearchClient(timeout=config.search_timeout)
        client.init_index(result.search_index)
        _state = ViewerState(path=path, result=result, client=client)
        return _state


def reset_state() -> None:
    """Drop the loaded export and stop its search worker."""
    global _state
    with _state_lock:
        if _state is not None:
            _state.client.close()
        _state = None


def _contact_to_dict(contact: Contact) -> Dict[str, Any]:
    return {
        "id": contact.contact_id,
        "phone": contact.phone,
        "name": contact.name,
        "display_name": get_contact_display_name(contact),
        "normalized_phone": contact.normalized_phone,
        "last_message": contact.last_message,
        "last_message_time": contact.last_message_time.isoformat(),
        "message_count": contact.message_count,
        "is_read": contact.is_read,
    }


def _message_to_dict(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "text": message.text,
        "timestamp": message.timestamp.isoformat(),
        "is_from_me": message.is_from_me,
        "is_read": message.is_read,
        "status": message.status,
        "is_call_log": message.is_call_log,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    reset_state()


app = FastAPI(
    lifespan=lifespan,
    title="Message Viewer API",
    version="0.1.0",
    description="Read-only API over a communication export.",
)

# Local dev CORS defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        os.getenv("MESSAGE_VIEWER_ALLOWED_ORIGIN", "http://127.0.0.1:5173"),
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check - reports whether the export file is present."""
    path = _get_export_path()
    exists = bool(path and path.exists())
    return {
        "status": "ok" if exists else "degraded",
        "export_exists": exists,
        "export_path": str(path) if path else None,
    }


@app.get("/summary")
def summary() -> Dict[str, Any]:
    """Load statistics for the current export."""
    state = _get_state()
    result = state.result
    return {
        "export_path": str(state.path),
        "total_records": result.records_seen,
        "skipped_records": result.records_skipped,
        "total_contacts": len(result.contacts),
        "total_messages": result.messages_loaded,
        "unread_contacts": sum(1 for c in result.contacts if not c.is_read),
        "duration_seconds": result.duration_seconds,
    }


@app.get("/contacts")
def contacts(limit: Optional[int] = Query(default=None, ge=1)) -> List[Dict[str, Any]]:
    """All contacts, most recent conversation first."""
    result = _get_state().result
    selected = result.contacts[:limit] if limit else result.contacts
    return [_contact_to_dict(c) for c in selected]


@app.get("/contacts/{contact_id}/messages")
def contact_messages(contact_id: str) -> Dict[str, Any]:
    """A contact and its conversation, oldest message first."""
    result = _get_state().result
    contact = result.get_contact(contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail=f"Contact not found: {contact_id}")
    return {
        "contact": _contact_to_dict(contact),
        "messages": [_message_to_dict(m) for m in result.messages_by_contact.get(contact_id, [])],
    }


@app.get("/search")
def search(q: str = Query(default="")) -> Dict[str, Any]:
    """
    Substring search across all conversations.

    An empty query is "no filter": every contact is returned with
    filtered=false. Otherwise matching contacts are returned in list order,
    each with a snippet of the first matching message.
    """
    state = _get_state()
    result = state.result

    if not normalize_query(q):
        return {
            "query": q,
            "filtered": False,
            "contacts": [_contact_to_dict(c) for c in result.contacts],
        }

    # the future always resolves, at worst to [] after the client timeout
    matched_ids = set(state.client.search(q).result())
    matched = [c for c in result.contacts if c.contact_id in matched_ids]
    locations = find_matches(
        [c.contact_id for c in matched], result.messages_by_contact, q, get_config()
    )

    items = []
    for contact in matched:
        item = _contact_to_dict(contact)
        location = locations.get(contact.contact_id)
        item["match"] = (
            {
                "message_id": location.message_id,
                "snippet": location.snippet,
                "in_message": location.matched,
            }
            if location
            else None
        )
        items.append(item)

    return {"query": q, "filtered": True, "contacts": items}


@app.get("/quality")
def quality() -> Dict[str, Any]:
    """Data quality report and phone normalization stats for the export."""
    result = _get_state().result
    report = result.quality
    stats = result.phone_stats
    return {
        "total_records": report.total_records if report else 0,
        "valid_records": report.valid_records if report else 0,
        "issue_counts": report.counts_by_type() if report else {},
        "issues": [
            {
                "type": issue.type,
                "field": issue.field,
                "index": issue.index,
                "message": issue.message,
            }
            for issue in (report.issues if report else [])
        ],
        "phone_variations": stats.phone_variations if stats else {},
        "unique_contacts": stats.unique_contacts if stats else 0,
    }
