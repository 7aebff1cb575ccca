"""
ETL (Extract, Transform, Load) module for the message viewer.

Translates a raw communication export into a contact-centric model and a
search corpus.

Architecture Overview:
    export.json (read-only)        in memory
    ├── legacy SMS rows      →     contacts (newest first)
    └── unified rows         →     messages_by_contact (oldest first)
        (SMS / IM / Call Log)      search_index (ContactKey → text)

Key Design Decisions:
    1. Schema detection is structural; mixed arrays are fine
    2. Phones are normalized to a country-prefixed digit string
    3. Bad rows are skipped, bad timestamps fall back to "now"
    4. Every load is a full rebuild
"""

from message_viewer.etl.normalizers import (
    normalize_phone,
    parse_unified_timestamp,
    parse_legacy_timestamp,
)
from message_viewer.etl.extractors import (
    classify_record,
    parse_party,
    extract_record,
    LegacyRecord,
    UnifiedRecord,
    ExtractedRecord,
    ExtractionState,
    PartyInfo,
)
from message_viewer.etl.aggregator import (
    aggregate_records,
    map_status,
    AggregationResult,
    Contact,
    Message,
)
from message_viewer.etl.validation import (
    check_records,
    phone_variations,
    DataQualityIssue,
    DataQualityReport,
    NormalizedStats,
)
from message_viewer.etl.pipeline import (
    load_records,
    run_etl,
    run_etl_from_file,
    ETLResult,
    ExportFormatError,
)

__all__ = [
    # Normalizers
    "normalize_phone",
    "parse_unified_timestamp",
    "parse_legacy_timestamp",
    # Extractors
    "classify_record",
    "parse_party",
    "extract_record",
    "LegacyRecord",
    "UnifiedRecord",
    "ExtractedRecord",
    "ExtractionState",
    "PartyInfo",
    # Aggregation
    "aggregate_records",
    "map_status",
    "AggregationResult",
    "Contact",
    "Message",
    # Validation
    "check_records",
    "phone_variations",
    "DataQualityIssue",
    "DataQualityReport",
    "NormalizedStats",
    # Pipeline
    "load_records",
    "run_etl",
    "run_etl_from_file",
    "ETLResult",
    "ExportFormatError",
]
