import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from esdrain.errors import BackendError  # noqa: E402


class FakeBackend:
    """
    In-memory scroll backend implementing the Transport protocol.

    Each scroll id is valid for exactly one successful continuation, so a
    client that reuses a stale id gets a BackendError. Entries in
    ``failures`` are consumed by the next continuation calls: exceptions
    are raised, anything else is returned as the raw response.
    """

    def __init__(self, docs, failures=None, release_status=200, search_response=None):
        self.docs = list(docs)
        self.failures = list(failures or [])
        self.release_status = release_status
        self.search_response = search_response
        self.calls = []
        self.released = []
        self._cursors = {}
        self._seq = 0

    def _page(self, offset, size):
        self._seq += 1
        scroll_id = f"scroll-{self._seq}"
        hits = [
            {"_index": "docs", "_id": str(i), "_source": doc}
            for i, doc in enumerate(self.docs[offset:offset + size], start=offset)
        ]
        self._cursors[scroll_id] = (offset + len(hits), size)
        return {
            "_scroll_id": scroll_id,
            "hits": {
                "total": {"value": len(self.docs), "relation": "eq"},
                "hits": hits
            }
        }

    def execute_search(self, index, body, batch_size, scroll_duration, timeout):
        self.calls.append(("search", index, body, batch_size, scroll_duration, timeout))
        if self.search_response is not None:
            if isinstance(self.search_response, BaseException):
                raise self.search_response
            return self.search_response
        return self._page(0, batch_size)

    def execute_continue(self, scroll_id, scroll_duration):
        self.calls.append(("scroll", scroll_id, scroll_duration))
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, BaseException):
                raise failure
            return failure
        if scroll_id not in self._cursors:
            raise BackendError(f"No search context found for id [{scroll_id}]")
        offset, size = self._cursors.pop(scroll_id)
        return self._page(offset, size)

    def execute_release(self, scroll_id):
        self.released.append(scroll_id)
        return self.release_status

    @property
    def scroll_calls(self):
        return [c for c in self.calls if c[0] == "scroll"]


@pytest.fixture
def docs():
    return [{"n": i, "title": f"doc {i}"} for i in range(5)]


@pytest.fixture
def backend(docs):
    return FakeBackend(docs)
