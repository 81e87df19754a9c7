"""
esdrain Transport — Elasticsearch Request Layer
===============================================

The scroll logic depends only on three raw calls:

    execute_search(index, body, batch_size, scroll_duration, timeout) -> response
    execute_continue(scroll_id, scroll_duration) -> response
    execute_release(scroll_id) -> HTTP status

ElasticsearchTransport implements them with the official client. Client
exceptions are translated into esdrain errors here so nothing above this
layer imports from ``elasticsearch``.
"""

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from elasticsearch import ApiError, Elasticsearch, SerializationError, TransportError

from .errors import BackendError, TransportFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Raw search, scroll and clear-scroll requests against one backend."""

    def execute_search(
        self,
        index: str,
        body: Dict[str, Any],
        batch_size: int,
        scroll_duration: str,
        timeout: str
    ) -> Any:
        ...

    def execute_continue(self, scroll_id: str, scroll_duration: str) -> Any:
        ...

    def execute_release(self, scroll_id: str) -> int:
        ...


class ElasticsearchTransport:
    """
    Transport backed by an ``elasticsearch.Elasticsearch`` client.

    The client is only read from, so one transport may be shared by
    several export sessions as long as each uses its own scroll id.

    Example:
        client = Elasticsearch("http://localhost:9200", basic_auth=("elastic", "pw"))
        transport = ElasticsearchTransport(client, request_timeout=10.0)
    """

    def __init__(self, client: Elasticsearch, request_timeout: Optional[float] = None):
        self._client = client
        self.request_timeout = request_timeout

    def _api(self) -> Elasticsearch:
        if self.request_timeout is None:
            return self._client
        return self._client.options(request_timeout=self.request_timeout)

    def execute_search(
        self,
        index: str,
        body: Dict[str, Any],
        batch_size: int,
        scroll_duration: str,
        timeout: str
    ) -> Any:
        logger.debug("search index=%s size=%d scroll=%s", index, batch_size, scroll_duration)
        # size and timeout are body fields; the batch size overrides any size in the query
        request = dict(body, size=batch_size, timeout=timeout)
        try:
            response = self._api().search(index=index, body=request, scroll=scroll_duration)
        except ApiError as e:
            raise BackendError(
                f"Search on '{index}' failed with status {e.meta.status}: {e.message}",
                error=e.body,
                cause=e
            ) from e
        except (TransportError, SerializationError) as e:
            raise TransportFailure(f"Search on '{index}' failed: {e}", cause=e) from e
        return response.body

    def execute_continue(self, scroll_id: str, scroll_duration: str) -> Any:
        try:
            response = self._api().scroll(scroll_id=scroll_id, scroll=scroll_duration)
        except ApiError as e:
            raise BackendError(
                f"Scroll failed with status {e.meta.status}: {e.message}",
                error=e.body,
                cause=e
            ) from e
        except (TransportError, SerializationError) as e:
            raise TransportFailure(f"Scroll failed: {e}", cause=e) from e
        return response.body

    def execute_release(self, scroll_id: str) -> int:
        try:
            response = self._api().clear_scroll(scroll_id=scroll_id)
        except ApiError as e:
            # 404 once the cursor has expired or was already cleared
            return e.meta.status
        except (TransportError, SerializationError) as e:
            raise TransportFailure(f"Clear scroll failed: {e}", cause=e) from e
        return response.meta.status

    def close(self):
        """Close the Elasticsearch client connection."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
