"""
Visualization functions for aggregated message data.

Provides plotting capabilities using plotly. Each function returns the
figure (None for empty input) and writes standalone HTML when asked to.
"""

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional, Sequence

import plotly.express as px  # type: ignore[import-untyped]
import plotly.graph_objects as go  # type: ignore[import-untyped]

from message_viewer.etl.aggregator import Contact, Message
from message_viewer.utils import get_contact_display_name

logger = logging.getLogger(__name__)


def _save(fig: go.Figure, output_file: Optional[str]) -> None:
    if output_file:
        fig.write_html(output_file)
        logger.info(f"Plot written to {output_file}")


def plot_messages_per_contact(
    contacts: Sequence[Contact],
    output_file: Optional[str] = None,
    limit: int = 20,
) -> Optional[go.Figure]:
    """
    Bar chart of message counts for the busiest contacts.

    Args:
        contacts: Aggregated contacts.
        output_file: Optional HTML file path to save the plot.
        limit: Number of contacts to show.

    Returns:
        The figure, or None if there are no contacts.
    """
    if not contacts:
        logger.info("No contacts to plot")
        return None

    top = sorted(contacts, key=lambda c: c.message_count, reverse=True)[:limit]
    fig = px.bar(
        x=[get_contact_display_name(c) for c in top],
        y=[c.message_count for c in top],
        labels={"x": "Contact", "y": "Messages"},
        title=f"Top {len(top)} contacts by message count",
    )
    _save(fig, output_file)
    return fig


def plot_messages_over_time(
    messages_by_contact: Mapping[str, Sequence[Message]],
    output_file: Optional[str] = None,
) -> Optional[go.Figure]:
    """
    Daily message volume, split into sent and received.

    Args:
        messages_by_contact: ContactKey -> messages.
        output_file: Optional HTML file path to save the plot.

    Returns:
        The figure, or None if there are no messages.
    """
    sent: Counter = Counter()
    received: Counter = Counter()
    for messages in messages_by_contact.values():
        for message in messages:
            day = message.timestamp.date()
            (sent if message.is_from_me else received)[day] += 1

    days: List = sorted(set(sent) | set(received))
    if not days:
        logger.info("No messages to plot")
        return None

    series: Dict[str, Counter] = {"Sent": sent, "Received": received}
    fig = go.Figure()
    for name, counts in series.items():
        fig.add_trace(go.Scatter(x=days, y=[counts.get(d, 0) for d in days], mode="lines", name=name))
    fig.update_layout(title="Messages over time", xaxis_title="Date", yaxis_title="Messages")
    _save(fig, output_file)
    return fig
