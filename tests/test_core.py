import logging

import pytest

from esdrain import core
from esdrain.core import ScrollClient
from esdrain.errors import (
    BackendError,
    MalformedQuery,
    ProtocolViolation,
    ReleaseFailure,
    TransportFailure,
)
from esdrain.query import QuerySpec

from conftest import FakeBackend


def spec(body='{"query": {"match_all": {}}}', batch_size=2):
    return QuerySpec("docs", body, batch_size=batch_size)


def test_search_passes_scroll_duration_and_timeout(backend):
    client = ScrollClient(backend)
    page = client.search(spec())

    assert backend.calls == [
        ("search", "docs", {"query": {"match_all": {}}}, 2, "10m", "10s")
    ]
    assert page.scroll_id == "scroll-1"
    assert len(page.hits) == 2
    assert page.total == 5


def test_custom_durations(backend):
    client = ScrollClient(backend, scroll_duration="2m", timeout="30s")
    page = client.search(spec())
    client.scroll(page.scroll_id)
    assert backend.calls[0][4:] == ("2m", "30s")
    assert backend.calls[1] == ("scroll", "scroll-1", "2m")


def test_malformed_query_fails_before_any_request(backend):
    client = ScrollClient(backend)
    with pytest.raises(MalformedQuery):
        client.search(spec(body="{not json"))
    assert backend.calls == []


def test_search_is_not_retried():
    backend = FakeBackend([], search_response={"error": {"type": "x"}})
    with pytest.raises(BackendError):
        ScrollClient(backend).search(spec())
    assert len(backend.calls) == 1


def test_search_on_empty_index_still_returns_scroll_id():
    backend = FakeBackend([])
    page = ScrollClient(backend).search(spec())
    assert page.scroll_id
    assert page.hits == []
    assert page.total == 0


def test_scroll_returns_new_scroll_id(backend):
    client = ScrollClient(backend)
    first = client.search(spec())
    second = client.scroll(first.scroll_id)
    assert second.scroll_id != first.scroll_id
    assert [h["_id"] for h in second.hits] == ["2", "3"]


def test_scroll_single_attempt_does_not_retry(backend):
    backend.failures = [TransportFailure("connection reset")]
    client = ScrollClient(backend)
    first = client.search(spec())
    with pytest.raises(TransportFailure):
        client.scroll(first.scroll_id)
    assert len(backend.scroll_calls) == 1


@pytest.mark.parametrize("max_retries", [0, 1, 3])
def test_always_failing_scroll_makes_r_plus_one_attempts(backend, max_retries):
    errors = [TransportFailure(f"timeout {i}") for i in range(max_retries + 1)]
    backend.failures = list(errors)
    client = ScrollClient(backend)
    first = client.search(spec())

    with pytest.raises(TransportFailure) as exc:
        client.scroll_with_retry(first.scroll_id, max_retries)

    assert exc.value is errors[-1]
    assert len(backend.scroll_calls) == max_retries + 1


def test_succeeds_after_k_failures(backend):
    backend.failures = [
        TransportFailure("timeout"),
        {"error": {"type": "es_rejected_execution_exception"}},
        {"_scroll_id": "abc", "hits": {"total": {"value": 5}}},
    ]
    client = ScrollClient(backend)
    first = client.search(spec())

    page = client.scroll_with_retry(first.scroll_id, max_retries=3)

    assert [h["_id"] for h in page.hits] == ["2", "3"]
    assert len(backend.scroll_calls) == 4


def test_retries_reuse_the_failed_scroll_id(backend):
    backend.failures = [BackendError("busy"), BackendError("busy")]
    client = ScrollClient(backend)
    first = client.search(spec())
    client.scroll_with_retry(first.scroll_id, max_retries=2)
    assert {c[1] for c in backend.scroll_calls} == {first.scroll_id}


def test_each_retry_is_logged(backend, caplog):
    backend.failures = [TransportFailure("timeout"), ProtocolViolation("no hits")]
    client = ScrollClient(backend)
    first = client.search(spec())

    with caplog.at_level(logging.WARNING, logger="esdrain.core"):
        client.scroll_with_retry(first.scroll_id, max_retries=5)

    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 2
    assert "timeout" in messages[0]
    assert "retry 1 of 5" in messages[0]
    assert "no hits" in messages[1]
    assert "retry 2 of 5" in messages[1]


def test_retries_are_immediate_by_default(backend, monkeypatch):
    sleeps = []
    monkeypatch.setattr(core.time, "sleep", sleeps.append)
    backend.failures = [TransportFailure("timeout")]
    client = ScrollClient(backend)
    client.scroll_with_retry(client.search(spec()).scroll_id, max_retries=1)
    assert sleeps == []


def test_retry_delay_is_applied_between_attempts(backend, monkeypatch):
    sleeps = []
    monkeypatch.setattr(core.time, "sleep", sleeps.append)
    backend.failures = [TransportFailure("a"), TransportFailure("b")]
    client = ScrollClient(backend)
    client.scroll_with_retry(client.search(spec()).scroll_id, max_retries=2, retry_delay=0.5)
    assert sleeps == [0.5, 0.5]


def test_negative_retry_budget_rejected(backend):
    with pytest.raises(ValueError):
        ScrollClient(backend).scroll_with_retry("abc", max_retries=-1)


def test_clear_scroll_success(backend):
    ScrollClient(backend).clear_scroll("abc")
    assert backend.released == ["abc"]


def test_clear_scroll_bad_status():
    backend = FakeBackend([], release_status=404)
    with pytest.raises(ReleaseFailure) as exc:
        ScrollClient(backend).clear_scroll("abc")
    assert exc.value.status == 404
    assert not exc.value.retryable


def test_clear_scroll_transport_failure_becomes_release_failure():
    class Broken(FakeBackend):
        def execute_release(self, scroll_id):
            raise TransportFailure("connection refused")

    with pytest.raises(ReleaseFailure) as exc:
        ScrollClient(Broken([])).clear_scroll("abc")
    assert isinstance(exc.value.cause, TransportFailure)


def test_close_closes_transport():
    closed = []

    class Closable(FakeBackend):
        def close(self):
            closed.append(True)

    with ScrollClient(Closable([])):
        pass
    assert closed == [True]
