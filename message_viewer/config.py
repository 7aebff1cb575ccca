"""
Configuration module for the message viewer.

Handles the settings that shape normalization and search:

    - country_prefix / local_number_length: single-country phone heuristics
    - search_timeout / search_debounce: search worker timing
    - snippet_context / snippet_fallback_width: match snippet sizing
    - export_path: the JSON export served by the API

Environment Variables:
    MESSAGE_VIEWER_EXPORT_PATH: Path to the JSON export file.
    MESSAGE_VIEWER_COUNTRY_PREFIX: Country calling code used for local numbers.
"""

import os
from pathlib import Path
from typing import Optional


class Config:
    """Configuration class for the message viewer."""

    # Maldives numbering: 7-digit local numbers under country code 960
    DEFAULT_COUNTRY_PREFIX = "960"
    DEFAULT_LOCAL_NUMBER_LENGTH = 7

    # Search worker timing (seconds)
    DEFAULT_SEARCH_TIMEOUT = 5.0
    DEFAULT_SEARCH_DEBOUNCE = 0.15

    # Snippet sizing (characters)
    DEFAULT_SNIPPET_CONTEXT = 20
    DEFAULT_SNIPPET_FALLBACK_WIDTH = 60

    DEFAULT_EXPORT_NAME = "export.json"

    def __init__(
        self,
        export_path: Optional[str] = None,
        country_prefix: Optional[str] = None,
        local_number_length: Optional[int] = None,
        search_timeout: Optional[float] = None,
        search_debounce: Optional[float] = None,
        snippet_context: Optional[int] = None,
        snippet_fallback_width: Optional[int] = None,
    ):
        """
        Initialize configuration.

        Args:
            export_path: Optional path to the JSON export. If not provided, uses
                    MESSAGE_VIEWER_EXPORT_PATH, then ./export.json if it exists.
            country_prefix: Country calling code prepended to local numbers.
            local_number_length: Digit count of a bare local number.
            search_timeout: Seconds before a pending search resolves empty.
            search_debounce: Seconds to wait after the last keystroke.
            snippet_context: Characters of context on each side of a match.
            snippet_fallback_width: Width of the snippet when no message matched.
        """
        self._export_path: Optional[Path] = None
        if export_path:
            self._export_path = Path(export_path)
        elif os.getenv("MESSAGE_VIEWER_EXPORT_PATH"):
            self._export_path = Path(os.environ["MESSAGE_VIEWER_EXPORT_PATH"])
        else:
            current_dir_export = Path.cwd() / self.DEFAULT_EXPORT_NAME
            if current_dir_export.exists():
                self._export_path = current_dir_export

        self.country_prefix = (
            country_prefix
            or os.getenv("MESSAGE_VIEWER_COUNTRY_PREFIX")
            or self.DEFAULT_COUNTRY_PREFIX
        )
        self.local_number_length = local_number_length or self.DEFAULT_LOCAL_NUMBER_LENGTH
        self.search_timeout = (
            search_timeout if search_timeout is not None else self.DEFAULT_SEARCH_TIMEOUT
        )
        self.search_debounce = (
            search_debounce if search_debounce is not None else self.DEFAULT_SEARCH_DEBOUNCE
        )
        self.snippet_context = (
            snippet_context if snippet_context is not None else self.DEFAULT_SNIPPET_CONTEXT
        )
        self.snippet_fallback_width = (
            snippet_fallback_width
            if snippet_fallback_width is not None
            else self.DEFAULT_SNIPPET_FALLBACK_WIDTH
        )

    @property
    def export_path(self) -> Optional[Path]:
        """Get the JSON export file path."""
        return self._export_path

    @property
    def export_path_str(self) -> Optional[str]:
        """Get the JSON export file path as a string."""
        return str(self._export_path) if self._export_path else None

    def validate(self) -> bool:
        """
        Validate that the export file exists and is readable.

        Returns:
            True if the export exists and is readable, False otherwise.
        """
        if not self._export_path:
            return False
        return self._export_path.exists() and os.access(self._export_path, os.R_OK)


# Global configuration instance
_config: Optional[Config] = None


def get_config(export_path: Optional[str] = None) -> Config:
    """
    Get or create the global configuration instance.

    Args:
        export_path: Optional path to the JSON export.

    Returns:
        Config instance.
    """
    global _config
    if _config is None or export_path is not None:
        _config = Config(export_path)
    return _config


def set_config(config: Optional[Config]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use, or None to reset.
    """
    global _config
    _config = config
