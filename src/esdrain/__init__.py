"""
esdrain — Resilient Elasticsearch Scroll Export
===============================================

Drains every document matching a query out of an Elasticsearch index using
the scroll API, in bounded batches, without losing the cursor on transient
failures:

- One initial search opens a scroll cursor
- Each scroll request renews the cursor and returns the next batch
- Failed scroll requests are retried a bounded number of times
- An empty batch ends the export
- The cursor is cleared exactly once, on success or failure

Usage:
    from esdrain import ExportConfig, ExportSession, CollectingSink

    config = ExportConfig(index="corpus", hosts=["http://localhost:9200"])
    sink = CollectingSink()
    with config.scroll_client() as client:
        ExportSession(client, config.query_spec(), max_retries=3).run(sink)

License: MIT
"""

__version__ = "0.1.0"

from .config import ExportConfig, parse_duration
from .core import ScrollClient
from .errors import (
    BackendError,
    ErrorKind,
    MalformedQuery,
    ProtocolViolation,
    ReleaseFailure,
    ScrollError,
    TransportFailure,
)
from .extract import ScrollPage, extract_search_result
from .query import QuerySpec
from .session import ExportResult, ExportSession, SessionState
from .sinks import BatchConsumer, CollectingSink, JsonlSink
from .transport import ElasticsearchTransport, Transport

__all__ = [
    "BackendError",
    "BatchConsumer",
    "CollectingSink",
    "ElasticsearchTransport",
    "ErrorKind",
    "ExportConfig",
    "ExportResult",
    "ExportSession",
    "JsonlSink",
    "MalformedQuery",
    "ProtocolViolation",
    "QuerySpec",
    "ReleaseFailure",
    "ScrollClient",
    "ScrollError",
    "ScrollPage",
    "SessionState",
    "Transport",
    "TransportFailure",
    "extract_search_result",
    "parse_duration",
]
