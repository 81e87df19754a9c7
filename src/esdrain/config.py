"""
esdrain Config — Export Settings
================================

ExportConfig collects everything an export needs: where the cluster is,
how to authenticate, what to query, and the scroll discipline (batch size,
retry budget, cursor lifetime, timeout).
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from elasticsearch import Elasticsearch

from .core import ScrollClient
from .query import QueryBody, QuerySpec
from .transport import ElasticsearchTransport


_DURATION = re.compile(r"^(\d+)(ms|s|m|h|d)$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def parse_duration(value: str) -> float:
    """
    Convert an Elasticsearch time unit string ("10s", "10m", "500ms") to seconds.

    Raises:
        ValueError: unsupported format or a zero duration
    """
    match = _DURATION.match(value.strip())
    if not match:
        raise ValueError(f"Invalid duration {value!r} (expected e.g. '10s', '10m')")
    amount, unit = int(match.group(1)), match.group(2)
    seconds = amount / 1000 if unit == "ms" else amount * _UNIT_SECONDS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")
    return seconds


@dataclass
class ExportConfig:
    """
    Settings for one export.

    Example:
        config = ExportConfig(
            index="corpus",
            query='{"query": {"match_all": {}}}',
            hosts=["https://es1:9200"],
            username="elastic",
            password="secret",
        )
        with config.scroll_client() as client:
            ExportSession(client, config.query_spec(), config.max_retries).run(sink)
    """

    index: str
    query: QueryBody = '{"query": {"match_all": {}}}'
    hosts: List[str] = field(default_factory=lambda: ["http://localhost:9200"])
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None
    verify_certs: bool = True
    batch_size: int = 1000
    max_retries: int = 3
    retry_delay: float = 0.0
    scroll_duration: str = ScrollClient.SCROLL_DURATION
    timeout: str = ScrollClient.TIMEOUT

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")
        # Fail early on bad durations rather than at the first request
        parse_duration(self.scroll_duration)
        parse_duration(self.timeout)

    @property
    def request_timeout(self) -> float:
        return parse_duration(self.timeout)

    def query_spec(self) -> QuerySpec:
        return QuerySpec(self.index, self.query, self.batch_size)

    def build_client(self) -> Elasticsearch:
        """Create the Elasticsearch client for these settings."""
        conn_kwargs: Dict[str, Any] = {
            "hosts": self.hosts,
            "verify_certs": self.verify_certs,
            "request_timeout": self.request_timeout
        }

        if self.api_key:
            conn_kwargs["api_key"] = self.api_key
        elif self.username:
            conn_kwargs["basic_auth"] = (self.username, self.password or "")

        return Elasticsearch(**conn_kwargs)

    def scroll_client(self) -> ScrollClient:
        transport = ElasticsearchTransport(self.build_client(), self.request_timeout)
        return ScrollClient(
            transport,
            scroll_duration=self.scroll_duration,
            timeout=self.timeout
        )
