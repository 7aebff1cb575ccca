"""
Search module: corpus construction and the off-thread search executor.
"""

from message_viewer.search.index import (
    build_search_index,
    corpus_entries,
    search_corpus,
    find_match,
    find_matches,
    make_snippet,
    CorpusEntry,
    MatchLocation,
)
from message_viewer.search.worker import (
    SearchWorker,
    SearchClient,
    SearchSession,
    InitMessage,
    SearchMessage,
    ResultMessage,
)

__all__ = [
    "build_search_index",
    "corpus_entries",
    "search_corpus",
    "find_match",
    "find_matches",
    "make_snippet",
    "CorpusEntry",
    "MatchLocation",
    "SearchWorker",
    "SearchClient",
    "SearchSession",
    "InitMessage",
    "SearchMessage",
    "ResultMessage",
]
