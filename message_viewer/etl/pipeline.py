"""
ETL Pipeline orchestration.

Turns a raw export into everything the viewer needs in one call:

Pipeline Steps:
    1. Load the JSON export (the only step allowed to raise)
    2. Aggregate records into contacts and conversations
    3. Build the per-contact search corpus
    4. Run data quality checks

Each load is a full rebuild; there is no incremental state between runs.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from message_viewer.config import Config, get_config
from message_viewer.etl.aggregator import AggregationResult, Contact, Message, aggregate_records
from message_viewer.etl.validation import (
    DataQualityReport,
    NormalizedStats,
    check_records,
    phone_variations,
)
from message_viewer.search.index import build_search_index

logger = logging.getLogger(__name__)

# Wrapper keys some exporters nest the record array under
RECORD_CONTAINER_KEYS = ("records", "data", "messages")


class ExportFormatError(ValueError):
    """The export file is unreadable or not an array of records."""


@dataclass
class ETLResult:
    """Result of an ETL run."""

    contacts: List[Contact] = field(default_factory=list)
    messages_by_contact: Dict[str, List[Message]] = field(default_factory=dict)
    search_index: Dict[str, str] = field(default_factory=dict)
    quality: Optional[DataQualityReport] = None
    phone_stats: Optional[NormalizedStats] = None
    records_seen: int = 0
    records_skipped: int = 0
    source_path: Optional[Path] = None
    duration_seconds: float = 0.0

    @property
    def messages_loaded(self) -> int:
        return sum(len(messages) for messages in self.messages_by_contact.values())

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        for contact in self.contacts:
            if contact.contact_id == contact_id:
                return contact
        return None

    def __str__(self) -> str:
        source_info = f"\n  Source: {self.source_path.name}" if self.source_path else ""
        quality_info = ""
        if self.quality is not None:
            quality_info = (
                f"\n  Quality: {self.quality.valid_records}/{self.quality.total_records} "
                f"records clean, {len(self.quality.issues)} issues"
            )
        return (
            f"ETL complete{source_info}\n"
            f"  Records: {self.records_seen} read, {self.records_skipped} skipped\n"
            f"  Contacts: {len(self.contacts)}\n"
            f"  Messages: {self.messages_loaded}"
            f"{quality_info}\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


def load_records(path: Union[str, Path]) -> List[Any]:
    """
    Read the raw record array from a JSON export.

    Accepts a top-level array, or an object holding the array under one of
    RECORD_CONTAINER_KEYS.

    Args:
        path: Path to the export file.

    Returns:
        List of raw records (unvalidated).

    Raises:
        ExportFormatError: If the file is missing, not JSON, or has no array.
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ExportFormatError(f"Export not found: {path}") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ExportFormatError(f"Cannot read export {path}: {e}") from e

    if isinstance(data, dict):
        for key in RECORD_CONTAINER_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break

    if not isinstance(data, list):
        raise ExportFormatError(f"Export {path} does not contain a record array")

    logger.info(f"Loaded {len(data)} records from {path}")
    return data


def run_etl(
    records: List[Any],
    config: Optional[Config] = None,
    check_quality: bool = True,
    source_path: Optional[Path] = None,
) -> ETLResult:
    """
    Run the full ETL pipeline over already-loaded records.

    Args:
        records: Raw export rows.
        config: Optional Config; defaults to the global one.
        check_quality: Whether to build the data quality report.
        source_path: Where the records came from, for reporting.

    Returns:
        ETLResult with contacts, conversations, search index and statistics.
    """
    start_time = datetime.now()
    config = config or get_config()

    logger.info("Step 1: Aggregating records...")
    aggregated: AggregationResult = aggregate_records(records, config)

    logger.info("Step 2: Building search index...")
    search_index = build_search_index(
        aggregated.contacts,
        aggregated.messages_by_contact,
        aggregated.searchable_terms,
    )

    quality = None
    stats = None
    if check_quality:
        logger.info("Step 3: Checking data quality...")
        quality = check_records(records)
        stats = phone_variations(records, config)

    result = ETLResult(
        contacts=aggregated.contacts,
        messages_by_contact=aggregated.messages_by_contact,
        search_index=search_index,
        quality=quality,
        phone_stats=stats,
        records_seen=aggregated.records_seen,
        records_skipped=aggregated.records_skipped,
        source_path=source_path,
        duration_seconds=(datetime.now() - start_time).total_seconds(),
    )
    logger.info(str(result))
    return result


def run_etl_from_file(
    path: Union[str, Path],
    config: Optional[Config] = None,
    check_quality: bool = True,
) -> ETLResult:
    """load_records + run_etl. Raises ExportFormatError for a bad file."""
    path = Path(path)
    return run_etl(load_records(path), config, check_quality=check_quality, source_path=path)
