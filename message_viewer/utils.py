"""
Utility functions and classes for the message viewer.
"""

from datetime import datetime
from typing import Optional

from message_viewer.etl.aggregator import Contact
from message_viewer.etl.extractors import UNKNOWN_NAME


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKCYAN = "\033[96m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"
    UNDERLINE = "\033[4m"


def format_message_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """
    Format a message timestamp relative to now, chat-list style.

    Args:
        timestamp: Message time.
        now: Reference time (defaults to datetime.now()).

    Returns:
        "14:05" for today, "Yesterday", a weekday within the week,
        otherwise "Jun 13".
    """
    now = now or datetime.now()
    days = (now - timestamp).days

    if days <= 0:
        return timestamp.strftime("%H:%M")
    if days == 1:
        return "Yesterday"
    if days < 7:
        return timestamp.strftime("%a")
    return f"{timestamp.strftime('%b')} {timestamp.day}"


def get_contact_display_name(contact: Contact, country_prefix: str = "960") -> str:
    """
    Name to show for a contact: its name, or a formatted phone number.

    Args:
        contact: Aggregated contact.
        country_prefix: Prefix used when formatting bare 10-character numbers.

    Returns:
        Display string.
    """
    if contact.name and contact.name != UNKNOWN_NAME and contact.name.strip():
        return contact.name

    phone = contact.phone
    if phone.startswith("+"):
        return phone
    if len(phone) == 10:
        return f"+{country_prefix} {phone[:3]} {phone[3:]}"
    return phone


def format_message_count(count: int) -> str:
    """
    Format message count with appropriate units.

    Args:
        count: Number of messages.

    Returns:
        Formatted string (e.g., "1,234" or "1.2K").
    """
    if count < 1000:
        return str(count)
    elif count < 1_000_000:
        return f"{count / 1000:.1f}K"
    else:
        return f"{count / 1_000_000:.1f}M"
