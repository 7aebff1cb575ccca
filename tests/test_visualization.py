"""
Tests for visualization.py plotting functions.
"""

from pathlib import Path

import plotly.graph_objects as go

from message_viewer.etl.aggregator import aggregate_records
from message_viewer.visualization import plot_messages_over_time, plot_messages_per_contact


class TestPlotMessagesPerContact:
    """Tests for plot_messages_per_contact function."""

    def test_handles_empty_contacts(self):
        assert plot_messages_per_contact([]) is None

    def test_bar_per_contact(self, mixed_records):
        contacts = aggregate_records(mixed_records).contacts
        fig = plot_messages_per_contact(contacts)

        assert isinstance(fig, go.Figure)
        bar = fig.data[0]
        assert len(bar.x) == 3
        assert list(bar.y) == [2, 2, 2]
        assert "Amy" in list(bar.x)

    def test_limit(self, mixed_records):
        contacts = aggregate_records(mixed_records).contacts
        fig = plot_messages_per_contact(contacts, limit=1)
        assert len(fig.data[0].x) == 1

    def test_writes_html(self, mixed_records, tmp_path: Path):
        output = tmp_path / "contacts.html"
        plot_messages_per_contact(aggregate_records(mixed_records).contacts, output_file=str(output))
        assert output.exists()
        assert "<html" in output.read_text(encoding="utf-8").lower()


class TestPlotMessagesOverTime:
    """Tests for plot_messages_over_time function."""

    def test_handles_empty_messages(self):
        assert plot_messages_over_time({}) is None
        assert plot_messages_over_time({"x": []}) is None

    def test_sent_and_received_traces(self, mixed_records):
        result = aggregate_records(mixed_records)
        fig = plot_messages_over_time(result.messages_by_contact)

        assert [trace.name for trace in fig.data] == ["Sent", "Received"]
        sent, received = fig.data
        days = list(sent.x)
        assert days == sorted(days)
        # 13/06: one each way; 14/06: two received; 16/06: call in, reply out
        assert sum(sent.y) == 2
        assert sum(received.y) == 4

    def test_days_aligned_across_traces(self, mixed_records):
        fig = plot_messages_over_time(aggregate_records(mixed_records).messages_by_contact)
        assert list(fig.data[0].x) == list(fig.data[1].x)
        assert len(fig.data[0].x) == 3

    def test_writes_html(self, amy_records, tmp_path: Path):
        output = tmp_path / "timeline.html"
        plot_messages_over_time(aggregate_records(amy_records).messages_by_contact, output_file=str(output))
        assert output.exists()

    def test_single_day(self, amy_records):
        fig = plot_messages_over_time(aggregate_records(amy_records).messages_by_contact)
        assert list(fig.data[0].y) == [1]
        assert list(fig.data[1].y) == [1]
