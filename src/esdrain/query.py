"""
esdrain Query — Export Query Specification
==========================================

A QuerySpec names the index to drain, the raw search body and the number of
hits to fetch per scroll batch. The body may be given as JSON text (as it
arrives from the command line) or as an already-built mapping.
"""

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from .errors import MalformedQuery


QueryBody = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class QuerySpec:
    """
    Immutable description of one export.

    Example:
        spec = QuerySpec("corpus", '{"query": {"match_all": {}}}', batch_size=500)
        body = spec.parsed_body()
    """

    index: str
    body: QueryBody
    batch_size: int = 1000

    def __post_init__(self):
        if not self.index:
            raise ValueError("index must be a non-empty name")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            raise ValueError(f"batch_size must be an integer, got {self.batch_size!r}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def parsed_body(self) -> Dict[str, Any]:
        """
        Return the search body as a fresh dict.

        Raises:
            MalformedQuery: if the text is not JSON or not a JSON object
        """
        if isinstance(self.body, Mapping):
            return copy.deepcopy(dict(self.body))

        try:
            parsed = json.loads(self.body)
        except (TypeError, ValueError) as e:
            raise MalformedQuery(f"Query body is not valid JSON: {e}", cause=e) from e

        if not isinstance(parsed, dict):
            raise MalformedQuery(
                f"Query body must be a JSON object, got {type(parsed).__name__}"
            )
        return parsed
