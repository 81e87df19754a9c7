import io
import json

import pytest

from esdrain.errors import TransportFailure
from esdrain.sinks import CollectingSink, JsonlSink


def hits(*ids):
    return [{"_index": "docs", "_id": i, "_source": {"id": i}} for i in ids]


def test_jsonl_writes_source_per_line():
    stream = io.StringIO()
    sink = JsonlSink(stream, quiet=True)
    sink.on_batch(hits("a", "b"), 3)
    sink.on_batch(hits("c"), 3)
    sink.on_finish(3, None)

    lines = stream.getvalue().splitlines()
    assert [json.loads(line) for line in lines] == [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    assert sink.written == 3


def test_jsonl_raw_writes_whole_hit():
    stream = io.StringIO()
    sink = JsonlSink(stream, raw=True, quiet=True)
    sink.on_batch(hits("a"), 1)
    assert json.loads(stream.getvalue()) == {"_index": "docs", "_id": "a", "_source": {"id": "a"}}


def test_jsonl_keeps_non_ascii():
    stream = io.StringIO()
    JsonlSink(stream, quiet=True).on_batch([{"_source": {"title": "Ünïcödé"}}], 1)
    assert "Ünïcödé" in stream.getvalue()


def test_jsonl_progress_and_summary(capsys):
    sink = JsonlSink(io.StringIO(), progress_interval=2)
    sink.on_batch(hits("a", "b", "c"), 4)
    sink.on_batch(hits("d"), 4)
    sink.on_finish(4, None)

    out = capsys.readouterr().out
    assert out.count("documents (") == 2
    assert "EXPORT COMPLETE" in out
    assert "Documents written: 4" in out


def test_jsonl_summary_reports_error(capsys):
    sink = JsonlSink(io.StringIO())
    sink.on_finish(10, TransportFailure("connection refused"))
    out = capsys.readouterr().out
    assert "EXPORT FAILED" in out
    assert "connection refused" in out


def test_collecting_sink():
    sink = CollectingSink()
    sink.on_batch(hits("a", "b"), 3)
    sink.on_batch(hits("c"), 3)
    sink.on_finish(3, None)
    assert [d["_id"] for d in sink.documents] == ["a", "b", "c"]
    assert sink.totals == [3, 3]
    assert sink.finished


def test_negative_progress_interval_rejected():
    with pytest.raises(ValueError):
        JsonlSink(io.StringIO(), progress_interval=-5)


def test_zero_progress_interval_disables_progress(capsys):
    sink = JsonlSink(io.StringIO(), progress_interval=0)
    sink.on_batch(hits("a", "b"), 2)
    assert "documents (" not in capsys.readouterr().out
