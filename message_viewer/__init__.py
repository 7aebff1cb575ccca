"""
Message Viewer - contact-centric viewing and search for communication exports.

This package provides functionality to:
- Normalize legacy SMS and unified (SMS / IM / Call Log) export records
- Aggregate them into contacts and chronological conversations
- Search every conversation by substring without blocking the caller
"""

__version__ = "0.1.0"

from message_viewer.config import get_config, Config
from message_viewer.etl.pipeline import run_etl, run_etl_from_file, ETLResult
from message_viewer.search.worker import SearchClient

__all__ = [
    "get_config",
    "Config",
    "run_etl",
    "run_etl_from_file",
    "ETLResult",
    "SearchClient",
]
