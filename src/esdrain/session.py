r"""
esdrain Session — Draining One Scroll Cursor
============================================

An ExportSession runs the loop around ScrollClient for a single query:

    INIT -> QUERIED -> CONTINUING ... -> EXHAUSTED -> RELEASED
                                     \-> FAILED   -> RELEASED

The empty batch is the only exhaustion signal; the reported total may be
approximate while the index is being written to. Whenever a cursor was
opened it is released exactly once, whether the export drained, failed
after its retries, or the caller stopped iterating early. A failed release
is logged and kept on the session but never turns a finished export into
a failed one.
"""

import logging
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from .core import ScrollClient
from .errors import ReleaseFailure, ScrollError
from .extract import ScrollPage
from .query import QuerySpec
from .sinks import BatchConsumer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    INIT = "init"
    QUERIED = "queried"
    CONTINUING = "continuing"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    RELEASED = "released"


@dataclass
class ExportResult:
    """Outcome of a finished session."""

    total: int
    documents: int
    batches: int
    release_error: Optional[ReleaseFailure] = None

    @property
    def released(self) -> bool:
        return self.release_error is None


class ExportSession:
    """
    One export: initial search, scroll until an empty batch, clear the cursor.

    Example:
        session = ExportSession(client, spec, max_retries=3)
        for page in session.pages():
            handle(page.hits)

        # or push batches into a consumer
        result = ExportSession(client, spec).run(JsonlSink(f))
    """

    def __init__(
        self,
        client: ScrollClient,
        spec: QuerySpec,
        max_retries: int = 3,
        retry_delay: float = 0.0
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.client = client
        self.spec = spec
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.state = SessionState.INIT
        self.scroll_id: Optional[str] = None
        self.total = 0
        self.documents = 0
        self.batches = 0
        self.release_error: Optional[ReleaseFailure] = None
        self._over_total = False

    def pages(self) -> Iterator[ScrollPage]:
        """
        Yield every non-empty page of the export in order.

        Errors propagate unchanged. The cursor is released when the
        generator finishes, fails, or is closed early.
        """
        if self.state is not SessionState.INIT:
            raise RuntimeError(f"Session already started (state: {self.state.value})")

        try:
            page = self.client.search(self.spec)
        except ScrollError:
            # No cursor was opened, so there is nothing to release
            self.state = SessionState.FAILED
            raise
        self.state = SessionState.QUERIED
        self._advance(page)

        try:
            while page.hits:
                self._observe(page)
                yield page
                self.state = SessionState.CONTINUING
                page = self.client.scroll_with_retry(
                    self.scroll_id, self.max_retries, self.retry_delay
                )
                self._advance(page)
            self.state = SessionState.EXHAUSTED
            logger.debug("Scroll exhausted after %d batches", self.batches)
        finally:
            if self.state is not SessionState.EXHAUSTED:
                self.state = SessionState.FAILED
            self._release()

    def run(self, consumer: BatchConsumer) -> ExportResult:
        """
        Drain the cursor into ``consumer``.

        ``consumer.on_finish`` is called once, with the error when the
        export stops early; the error is then re-raised unchanged.
        """
        try:
            with closing(self.pages()) as pages:
                for page in pages:
                    consumer.on_batch(page.hits, page.total)
        except ScrollError as e:
            consumer.on_finish(self.total, e)
            raise
        consumer.on_finish(self.total, None)
        return self.result()

    def result(self) -> ExportResult:
        return ExportResult(
            total=self.total,
            documents=self.documents,
            batches=self.batches,
            release_error=self.release_error
        )

    def _advance(self, page: ScrollPage):
        # Each response supersedes the previous scroll id
        self.scroll_id = page.scroll_id
        self.total = page.total

    def _observe(self, page: ScrollPage):
        self.batches += 1
        self.documents += len(page.hits)
        if len(page.hits) > self.spec.batch_size:
            logger.warning(
                "Batch of %d hits exceeds batch size %d",
                len(page.hits), self.spec.batch_size
            )
        if self.documents > self.total and not self._over_total:
            self._over_total = True
            logger.warning(
                "Received %d documents but backend reported a total of %d",
                self.documents, self.total
            )

    def _release(self):
        try:
            self.client.clear_scroll(self.scroll_id)
        except ReleaseFailure as e:
            logger.warning("Could not release scroll cursor: %s", e)
            self.release_error = e
        self.state = SessionState.RELEASED
