"""
ETL Validation module.

Data quality checks over a raw export, run alongside aggregation. Nothing
here rejects records - aggregation already skips what it cannot use. The
report explains *why* rows were skipped or degraded, so an analyst can judge
how much of an export actually made it into the view.

Checks per record:
    1. Recognizable schema (legacy or unified)
    2. Required fields present (phone/party, body, timestamp)
    3. Timestamp parses in its schema's format
    4. Unified Party field is attributable

Phone variation stats group raw phone spellings by their normalized key,
which is how contacts end up collapsing together.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional
import logging

from message_viewer.config import Config, get_config
from message_viewer.etl.extractors import (
    CALL_LOG_TYPE,
    SUPPORTED_TYPES,
    LegacyRecord,
    UnifiedRecord,
    classify_record,
    parse_party,
)
from message_viewer.etl.normalizers import (
    LEGACY_TIMESTAMP_FORMAT,
    UNIFIED_TIMESTAMP_FORMAT,
    normalize_phone,
    strip_annotation,
)

logger = logging.getLogger(__name__)

IssueType = Literal[
    "invalid_timestamp", "missing_field", "invalid_date", "empty_value", "invalid_format"
]

UNIFIED_TIMESTAMP_PATTERN = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2}")


@dataclass
class DataQualityIssue:
    """A single problem found in one record."""

    type: IssueType
    field: str
    value: Any
    message: str
    index: Optional[int] = None


@dataclass
class DataQualityReport:
    """Result of checking every record in an export."""

    total_records: int = 0
    valid_records: int = 0
    issues: List[DataQualityIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues

    def counts_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.type] = counts.get(issue.type, 0) + 1
        return counts

    def __str__(self) -> str:
        lines = [f"{self.valid_records}/{self.total_records} records valid"]
        for issue_type, count in sorted(self.counts_by_type().items()):
            lines.append(f"  ✗ {issue_type}: {count}")
        if self.passed:
            lines.append("  ✓ No issues found")
        return "\n".join(lines)


@dataclass
class NormalizedStats:
    """How raw phone spellings collapse under normalization."""

    total_contacts: int = 0
    unique_contacts: int = 0
    phone_variations: Dict[str, List[str]] = field(default_factory=dict)


def _timestamp_parses(value: str, fmt: str) -> bool:
    try:
        datetime.strptime(value, fmt)
        return True
    except ValueError:
        return False


def _check_unified(record: UnifiedRecord, index: int) -> List[DataQualityIssue]:
    issues: List[DataQualityIssue] = []

    if record.type not in SUPPORTED_TYPES:
        issues.append(
            DataQualityIssue("invalid_format", "Type", record.type, "Unsupported record type", index)
        )
        return issues

    if record.type != CALL_LOG_TYPE and not record.description.strip():
        issues.append(
            DataQualityIssue("empty_value", "Description", record.description, "Empty message body", index)
        )

    if not record.party.strip():
        issues.append(DataQualityIssue("missing_field", "Party", record.party, "Missing party", index))
    elif parse_party(record.party, is_call_log=record.type == CALL_LOG_TYPE) is None:
        issues.append(
            DataQualityIssue("invalid_format", "Party", record.party, "Unattributable party", index)
        )

    raw_ts = str(record.timestamp or "")
    if not raw_ts:
        issues.append(
            DataQualityIssue("missing_field", "Timestamp", raw_ts, "Missing timestamp", index)
        )
    elif not UNIFIED_TIMESTAMP_PATTERN.match(raw_ts):
        issues.append(
            DataQualityIssue("invalid_timestamp", "Timestamp", raw_ts, "Unrecognized timestamp", index)
        )
    else:
        date_part, time_part = strip_annotation(raw_ts).split(None, 1)
        day, month, year = date_part.split("/")
        iso = f"{year}-{month.zfill(2)}-{day.zfill(2)}T{time_part.strip()}"
        if not _timestamp_parses(iso, UNIFIED_TIMESTAMP_FORMAT):
            issues.append(
                DataQualityIssue("invalid_date", "Timestamp", raw_ts, "Impossible date", index)
            )

    return issues


def _check_legacy(record: LegacyRecord, index: int) -> List[DataQualityIssue]:
    issues: List[DataQualityIssue] = []

    if not record.party_phone:
        issues.append(
            DataQualityIssue("missing_field", "party.phone", record.party_phone, "Missing phone", index)
        )
    if not record.message:
        issues.append(
            DataQualityIssue("missing_field", "message", record.message, "Missing message body", index)
        )

    if not record.date or not record.time:
        issues.append(
            DataQualityIssue("missing_field", "time", f"{record.date} {record.time}", "Missing date/time", index)
        )
    else:
        parts = str(record.date).split("/")
        candidate = (
            f"{parts[1]}/{parts[0]}/{parts[2]} {strip_annotation(str(record.time))}"
            if len(parts) == 3
            else ""
        )
        if not candidate or not _timestamp_parses(candidate, LEGACY_TIMESTAMP_FORMAT):
            issues.append(
                DataQualityIssue(
                    "invalid_timestamp", "time", f"{record.date} {record.time}", "Unparseable date/time", index
                )
            )

    return issues


def check_records(records: Iterable[Any]) -> DataQualityReport:
    """
    Check every record of an export for data quality problems.

    Args:
        records: Raw export rows (either schema).

    Returns:
        DataQualityReport; a record counts as valid when it has no issues.
    """
    report = DataQualityReport()

    for index, raw in enumerate(records):
        report.total_records += 1
        record = classify_record(raw)

        match record:
            case UnifiedRecord():
                issues = _check_unified(record, index)
            case LegacyRecord():
                issues = _check_legacy(record, index)
            case _:
                issues = [
                    DataQualityIssue("invalid_format", "record", raw, "Unrecognized record shape", index)
                ]

        if issues:
            report.issues.extend(issues)
        else:
            report.valid_records += 1

    logger.info(
        f"Data quality: {report.valid_records}/{report.total_records} valid, "
        f"{len(report.issues)} issues"
    )
    return report


def _raw_phone(record: Any) -> Optional[str]:
    match record:
        case LegacyRecord(party_phone=phone):
            return str(phone) if phone else None
        case UnifiedRecord():
            party = parse_party(record.party, is_call_log=record.is_call_log)
            if party is None or party.is_continuation:
                return None
            return party.phone
        case _:
            return None


def phone_variations(records: Iterable[Any], config: Optional[Config] = None) -> NormalizedStats:
    """
    Group the raw phone spellings of an export by normalized key.

    Args:
        records: Raw export rows.
        config: Optional Config supplying phone normalization settings.

    Returns:
        NormalizedStats; only keys with more than one spelling are listed in
        phone_variations.
    """
    config = config or get_config()
    spellings: Dict[str, List[str]] = {}
    total = 0

    for raw in records:
        phone = _raw_phone(classify_record(raw))
        if not phone:
            continue
        total += 1
        key = normalize_phone(phone, config.country_prefix, config.local_number_length) or phone
        variants = spellings.setdefault(key, [])
        if phone not in variants:
            variants.append(phone)

    return NormalizedStats(
        total_contacts=total,
        unique_contacts=len(spellings),
        phone_variations={k: v for k, v in spellings.items() if len(v) > 1},
    )
