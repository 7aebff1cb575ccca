"""
Search worker and its client.

Scanning the corpus runs on a dedicated thread so the caller (CLI loop, API
handler, UI) never blocks on it. The two sides only exchange messages:

    client -> worker:  InitMessage(entries)        no reply, replaces the corpus
                       SearchMessage(id, query)    answered by a ResultMessage
    worker -> client:  ResultMessage(id, results)

The corpus is copied into the worker on init, so nothing mutable is shared
between threads. Requests are handled one at a time in arrival order, but
callers correlate replies by id and must not rely on ordering.

Failure policy: a request that gets no reply within the timeout, or that is
pending when the worker dies, resolves to an empty result list.
"""

import itertools
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from message_viewer.config import Config
from message_viewer.search.index import CorpusEntry, corpus_entries, normalize_query, search_corpus

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256


@dataclass(frozen=True)
class InitMessage:
    entries: Tuple[CorpusEntry, ...]


@dataclass(frozen=True)
class SearchMessage:
    id: int
    query: str


@dataclass(frozen=True)
class ResultMessage:
    id: int
    results: Tuple[str, ...]


@dataclass(frozen=True)
class WorkerFailure:
    """Posted by the worker when it can no longer serve requests."""

    error: str


_STOP = object()

WorkerRequest = Union[InitMessage, SearchMessage]
WorkerReply = Union[ResultMessage, WorkerFailure]


class SearchWorker:
    """
    Owns the corpus and answers search requests on its own thread.

    Usage:
        worker = SearchWorker()
        worker.start()
        worker.requests.put(InitMessage(entries))
        worker.requests.put(SearchMessage(1, "hello"))
        reply = worker.replies.get()
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.requests: "queue.Queue[object]" = queue.Queue(maxsize=queue_size)
        self.replies: "queue.Queue[object]" = queue.Queue()
        self._corpus: Tuple[CorpusEntry, ...] = ()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_alive:
            return
        self._thread = threading.Thread(target=self._run, name="search-worker", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        if not self.is_alive:
            return
        self.requests.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)

    def handle(self, message: WorkerRequest) -> Optional[ResultMessage]:
        """Process one request; returns the reply for searches."""
        match message:
            case InitMessage(entries=entries):
                # lowercase once on the way in
                self._corpus = tuple(
                    CorpusEntry(e.contact_id, (e.text or "").lower()) for e in entries
                )
                logger.debug(f"Search corpus replaced ({len(self._corpus)} entries)")
                return None
            case SearchMessage(id=request_id, query=query):
                return ResultMessage(request_id, tuple(search_corpus(self._corpus, query)))
            case _:
                raise TypeError(f"Unknown worker message: {message!r}")

    def _run(self) -> None:
        try:
            while True:
                message = self.requests.get()
                if message is _STOP:
                    return
                reply = self.handle(message)
                if reply is not None:
                    self.replies.put(reply)
        except Exception as e:
            logger.exception("Search worker crashed")
            self.replies.put(WorkerFailure(str(e)))


class SearchClient:
    """
    Request/response correlation on top of a SearchWorker.

    search() returns a Future that always resolves to a list of ContactKeys:
    the worker's answer, or [] on timeout, worker failure or a closed client.
    """

    def __init__(
        self,
        timeout: float = Config.DEFAULT_SEARCH_TIMEOUT,
        worker: Optional[SearchWorker] = None,
    ):
        self.timeout = timeout
        self._worker = worker or SearchWorker()
        self._pending: Dict[int, Future] = {}
        self._timers: Dict[int, threading.Timer] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._latest_id = 0
        self._closed = False

        self._worker.start()
        self._dispatcher = threading.Thread(
            target=self._dispatch, name="search-dispatcher", daemon=True
        )
        self._dispatcher.start()

    def __enter__(self) -> "SearchClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def latest_id(self) -> int:
        """Id of the most recently issued request (0 before the first)."""
        return self._latest_id

    @property
    def is_searching(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def init_index(self, index: Union[Mapping[str, str], Iterable[CorpusEntry]]) -> None:
        """Send a fresh copy of the corpus to the worker."""
        if self._closed:
            return
        entries = corpus_entries(index) if isinstance(index, Mapping) else list(index)
        self._worker.requests.put(InitMessage(tuple(entries)))

    def search(self, query: str) -> "Future[List[str]]":
        """Issue a search; the returned Future resolves to matching ContactKeys."""
        return self.search_with_id(query)[1]

    def search_with_id(self, query: str) -> Tuple[int, "Future[List[str]]"]:
        """Like search(), also returning the request id for staleness checks."""
        future: "Future[List[str]]" = Future()
        if self._closed or not self._worker.is_alive:
            future.set_result([])
            return 0, future

        with self._lock:
            request_id = next(self._ids)
            self._latest_id = request_id
            self._pending[request_id] = future
            timer = threading.Timer(self.timeout, self._expire, args=(request_id,))
            timer.daemon = True
            self._timers[request_id] = timer
        timer.start()

        try:
            self._worker.requests.put_nowait(SearchMessage(request_id, query))
        except queue.Full:
            logger.warning(f"Search queue full, dropping request {request_id}")
            self._resolve(request_id, [])
        return request_id, future

    def close(self) -> None:
        """Stop the worker and resolve anything still pending with []."""
        if self._closed:
            return
        self._closed = True
        self._worker.stop()
        self._fail_all()
        self._worker.replies.put(_STOP)
        self._dispatcher.join(1.0)

    def _resolve(self, request_id: int, results: Sequence[str]) -> None:
        with self._lock:
            future = self._pending.pop(request_id, None)
            timer = self._timers.pop(request_id, None)
        if timer is not None:
            timer.cancel()
        if future is not None and not future.done():
            future.set_result(list(results))

    def _expire(self, request_id: int) -> None:
        with self._lock:
            pending = request_id in self._pending
        if pending:
            logger.warning(f"Search request {request_id} timed out after {self.timeout}s")
        self._resolve(request_id, [])

    def _fail_all(self) -> None:
        with self._lock:
            request_ids = list(self._pending)
        for request_id in request_ids:
            self._resolve(request_id, [])

    def _dispatch(self) -> None:
        while True:
            reply: WorkerReply = self._worker.replies.get()  # type: ignore[assignment]
            match reply:
                case ResultMessage(id=request_id, results=results):
                    self._resolve(request_id, results)
                case WorkerFailure(error=error):
                    logger.error(f"Search worker failed, resolving pending requests empty: {error}")
                    self._closed = True
                    self._fail_all()
                    return
                case _:
                    return


class SearchSession:
    """
    Caller-side view of a search box.

    Debounces dispatch and keeps only the answer to the latest request, so a
    slow reply to an older query can never overwrite a newer one.

    `contact_ids` is None while there is no active filter (empty query).
    """

    def __init__(
        self,
        client: SearchClient,
        debounce: float = Config.DEFAULT_SEARCH_DEBOUNCE,
        on_results: Optional[Callable[[Optional[List[str]]], None]] = None,
    ):
        self.client = client
        self.debounce = debounce
        self.on_results = on_results
        self.query = ""
        self.contact_ids: Optional[List[str]] = None
        self._expected_id = 0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()

    def submit(self, query: str) -> None:
        """Record a keystroke; dispatch happens after the debounce window."""
        with self._lock:
            self.query = query
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

            if not normalize_query(query):
                # empty query clears the filter without a round trip
                self._expected_id = 0
                self._publish(None)
                return

            self._timer = threading.Timer(self.debounce, self._dispatch, args=(query,))
            self._timer.daemon = True
            self._timer.start()

    def search_now(self, query: str) -> Optional[List[str]]:
        """
        Search immediately, bypassing the debounce, and wait for the answer.

        Returns:
            The active filter afterwards (None for an empty query).
        """
        with self._lock:
            self.query = query
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not normalize_query(query):
                self._expected_id = 0
                self._publish(None)
                return None

        request_id, future = self._issue(query)
        self.accept(request_id, future.result())
        return self.contact_ids

    def accept(self, request_id: int, results: Sequence[str]) -> bool:
        """
        Apply a reply if it answers the latest request.

        Returns:
            True if the results were applied, False if they were stale.
        """
        with self._lock:
            if request_id != self._expected_id:
                logger.debug(f"Discarding stale search results for request {request_id}")
                return False
            self._publish(list(results))
            return True

    def filter_contacts(self, contacts: Sequence):
        """All contacts with no filter, otherwise the matched ones in list order."""
        if self.contact_ids is None:
            return list(contacts)
        matched = set(self.contact_ids)
        return [c for c in contacts if c.contact_id in matched]

    def _issue(self, query: str) -> Tuple[int, "Future[List[str]]"]:
        # id allocation and _expected_id must not interleave with another issue
        with self._lock:
            request_id, future = self.client.search_with_id(query)
            self._expected_id = request_id
        return request_id, future

    def _dispatch(self, query: str) -> "Future[List[str]]":
        request_id, future = self._issue(query)
        future.add_done_callback(lambda f: self.accept(request_id, f.result()))
        return future

    def _publish(self, contact_ids: Optional[List[str]]) -> None:
        self.contact_ids = contact_ids
        if self.on_results is not None:
            self.on_results(contact_ids)
