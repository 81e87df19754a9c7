"""
esdrain Core — Scroll Cursor Client
===================================

ScrollClient drives the Elasticsearch scroll protocol one request at a time:

    search(spec)                      open a cursor, first page
    scroll(scroll_id)                 one continuation attempt
    scroll_with_retry(scroll_id, n)   continuation, retried up to n times
    clear_scroll(scroll_id)           release the cursor

Two time settings are kept apart. ``scroll_duration`` is how long the
server keeps cursor state alive between calls (renewed by every scroll);
``timeout`` bounds the search itself. The network timeout of a single
round trip is configured on the transport.

Retries only ever happen in scroll_with_retry. The initial search and the
release are attempted exactly once.
"""

import logging
import time

from .errors import ReleaseFailure, ScrollError
from .extract import ScrollPage, extract_search_result
from .query import QuerySpec
from .transport import Transport

logger = logging.getLogger(__name__)


class ScrollClient:
    """
    Query executor and cursor pump over a Transport.

    Example:
        client = ScrollClient(ElasticsearchTransport(es))
        page = client.search(QuerySpec("corpus", '{"query": {"match_all": {}}}', 500))
        while page.hits:
            handle(page.hits)
            page = client.scroll_with_retry(page.scroll_id, max_retries=3)
        client.clear_scroll(page.scroll_id)
    """

    # Server-side cursor lifetime between calls
    SCROLL_DURATION = "10m"

    # Search timeout, distinct from the cursor lifetime
    TIMEOUT = "10s"

    def __init__(
        self,
        transport: Transport,
        scroll_duration: str = SCROLL_DURATION,
        timeout: str = TIMEOUT
    ):
        """
        Args:
            transport: Object issuing the raw search/scroll/clear requests
            scroll_duration: Cursor validity window, e.g. "10m"
            timeout: Search timeout, e.g. "10s"
        """
        self.transport = transport
        self.scroll_duration = scroll_duration
        self.timeout = timeout

    def search(self, spec: QuerySpec) -> ScrollPage:
        """
        Run the initial query and open a scroll cursor.

        The body is parsed before any request goes out.

        Raises:
            MalformedQuery: the body is not a JSON object
            BackendError, ProtocolViolation, TransportFailure
        """
        body = spec.parsed_body()
        response = self.transport.execute_search(
            spec.index,
            body,
            spec.batch_size,
            self.scroll_duration,
            self.timeout
        )
        page = extract_search_result(response)
        logger.debug("Opened scroll on '%s': %d hits of %d", spec.index, len(page.hits), page.total)
        return page

    def scroll(self, scroll_id: str) -> ScrollPage:
        """Fetch the next page for ``scroll_id`` once, without retrying."""
        response = self.transport.execute_continue(scroll_id, self.scroll_duration)
        return extract_search_result(response)

    def scroll_with_retry(
        self,
        scroll_id: str,
        max_retries: int,
        retry_delay: float = 0.0
    ) -> ScrollPage:
        """
        Fetch the next page, retrying failed attempts with the same scroll id.

        A failed continuation does not consume the cursor, so every retry
        reuses ``scroll_id``. Retries are immediate unless ``retry_delay``
        is set.

        Args:
            scroll_id: Latest scroll id
            max_retries: Retries after the first attempt (0 = single attempt)
            retry_delay: Seconds to wait before each retry

        Returns:
            The first successful page

        Raises:
            The last error, unchanged, once retries run out
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")

        retries = max_retries
        while True:
            try:
                return self.scroll(scroll_id)
            except ScrollError as e:
                if retries == 0 or not e.retryable:
                    raise
                retries -= 1
                logger.warning(
                    "Retrying scroll due to error: %s (retry %d of %d)",
                    e, max_retries - retries, max_retries
                )
                if retry_delay > 0:
                    time.sleep(retry_delay)

    def clear_scroll(self, scroll_id: str) -> None:
        """
        Release a scroll cursor. Call at most once per cursor.

        Raises:
            ReleaseFailure: non-2xx status or the request itself failed
        """
        try:
            status = self.transport.execute_release(scroll_id)
        except ScrollError as e:
            raise ReleaseFailure(f"Failed to clear scroll: {e}", cause=e) from e

        if not 200 <= status < 300:
            raise ReleaseFailure(f"Failed to clear scroll (status {status})", status=status)

    def close(self):
        """Close the underlying transport if it can be closed."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
