"""
Tests for search corpus construction, substring search and match snippets.
"""

from datetime import datetime

from message_viewer.config import Config
from message_viewer.etl.aggregator import Contact, Message, aggregate_records
from message_viewer.search.index import (
    ELLIPSIS,
    CorpusEntry,
    build_search_index,
    corpus_entries,
    find_match,
    find_matches,
    make_snippet,
    normalize_query,
    search_corpus,
)


def _message(message_id: int, text: str, minute: int = 0) -> Message:
    return Message(
        id=message_id,
        text=text,
        timestamp=datetime(2020, 1, 1, 10, minute),
        is_from_me=False,
        is_read=True,
        status="read",
    )


class TestBuildSearchIndex:
    """Tests for the per-contact corpus."""

    def test_fields_joined_and_lowercased(self):
        contact = Contact(
            phone="+9601234567",
            name="John",
            normalized_phone="9601234567",
            last_message="Hello World",
            last_message_time=datetime(2020, 1, 1),
        )
        index = build_search_index([contact], {"9601234567": [_message(1, "Hello World")]})

        assert index == {"9601234567": "john\n+9601234567\n9601234567\nhello world\nhello world"}

    def test_includes_every_message_and_terms(self, mixed_records):
        result = aggregate_records(mixed_records)
        index = build_search_index(result.contacts, result.messages_by_contact, result.searchable_terms)

        assert "dinner tonight?" in index["9607781405"]
        assert "sure, at 8" in index["9607781405"]
        assert "inbox" in index["9607781405"]
        assert "part two of the message" in index["9601234567"]
        assert "call log" in index["9609876543"]

    def test_follows_contact_order(self, mixed_records):
        result = aggregate_records(mixed_records)
        index = build_search_index(result.contacts, result.messages_by_contact)
        assert list(index) == [c.contact_id for c in result.contacts]

    def test_empty(self):
        assert build_search_index([], {}) == {}


class TestSearchCorpus:
    """Tests for case-insensitive substring search."""

    def setup_method(self):
        self.entries = [
            CorpusEntry("a", "john\n+9601234567\nhello world"),
            CorpusEntry("b", "amy\n9607781405\nsee you tomorrow"),
        ]

    def test_query_is_case_insensitive(self):
        assert search_corpus(self.entries, "HELLO") == ["a"]

    def test_no_match(self):
        assert search_corpus(self.entries, "xyz") == []

    def test_empty_query_returns_empty(self):
        assert search_corpus(self.entries, "") == []
        assert search_corpus(self.entries, "   ") == []
        assert search_corpus(self.entries, None) == []

    def test_matches_phone_digits(self):
        assert search_corpus(self.entries, "778") == ["b"]

    def test_preserves_corpus_order(self):
        assert search_corpus(self.entries, "o") == ["a", "b"]

    def test_query_may_span_fields(self):
        """The newline delimiter is part of the searchable text."""
        assert search_corpus(self.entries, "john\n+960") == ["a"]

    def test_corpus_entries_round_trip_order(self):
        entries = corpus_entries({"x": "one", "y": "two"})
        assert entries == [CorpusEntry("x", "one"), CorpusEntry("y", "two")]

    def test_normalize_query(self):
        assert normalize_query("  HeLLo ") == "hello"
        assert normalize_query(None) == ""


class TestMakeSnippet:
    """Tests for snippet windows."""

    def test_middle_match_has_both_ellipses(self):
        text = "x" * 50 + "hello" + "y" * 45
        snippet = make_snippet(text, 50, 5, context=20)

        assert snippet.startswith(ELLIPSIS)
        assert snippet.endswith(ELLIPSIS)
        assert snippet[1:-1] == text[30:75]
        assert len(snippet[1:-1]) == 45

    def test_match_at_start_has_no_leading_ellipsis(self):
        snippet = make_snippet("hello there, how are you doing today my friend", 0, 5)
        assert not snippet.startswith(ELLIPSIS)
        assert snippet.endswith(ELLIPSIS)

    def test_short_text_untouched(self):
        assert make_snippet("hi hello", 3, 5) == "hi hello"

    def test_match_at_end(self):
        text = "a" * 30 + "hello"
        assert make_snippet(text, 30, 5) == ELLIPSIS + text[10:]


class TestFindMatch:
    """Tests for locating a query inside a conversation."""

    def test_first_chronological_hit(self):
        messages = [_message(1, "nothing here", 0), _message(2, "Lunch?", 1), _message(3, "lunch again", 2)]
        location = find_match("c", messages, "LUNCH")

        assert location.message_id == 2
        assert location.matched is True
        assert location.snippet == "Lunch?"

    def test_fallback_to_latest_message(self):
        messages = [_message(1, "first", 0), _message(2, "z" * 80, 1)]
        location = find_match("c", messages, "amy")

        assert location.message_id == 2
        assert location.matched is False
        assert location.snippet == "z" * 60 + ELLIPSIS

    def test_fallback_short_message_not_truncated(self):
        location = find_match("c", [_message(1, "ok")], "amy")
        assert location.snippet == "ok"

    def test_empty_query_is_none(self):
        assert find_match("c", [_message(1, "hi")], "") is None

    def test_no_messages_is_none(self):
        assert find_match("c", [], "hi") is None

    def test_custom_widths(self):
        location = find_match("c", [_message(1, "abcdefghij")], "zzz", context=2, fallback_width=4)
        assert location.snippet == "abcd" + ELLIPSIS

    def test_find_matches_uses_config(self):
        messages_by_contact = {
            "a": [_message(1, "the quick brown fox jumps")],
            "b": [],
        }
        config = Config(snippet_context=3)
        matches = find_matches(["a", "b", "missing"], messages_by_contact, "brown", config)

        assert list(matches) == ["a"]
        assert matches["a"].snippet == ELLIPSIS + "ck brown fo" + ELLIPSIS
