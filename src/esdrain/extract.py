"""
esdrain Extract — Search/Scroll Response Validation
===================================================

Both the initial search and every scroll continuation return the same
envelope:

    {
        "_scroll_id": "DXF1ZXJ5QW5kRmV0Y2gBAAAAAAAAAD4WYm9laVYtZndUQlNsdDcwakFMNjU1QQ==",
        "hits": {
            "total": {"value": 5, "relation": "eq"},
            "hits": [{"_index": "...", "_id": "...", "_source": {...}}, ...]
        }
    }

Some backends report failures inside a 200 response, so the payload is
checked for an ``error`` value before anything else. Checks run in a fixed
order: error, scroll id, hits array, total.
"""

from typing import Any, Dict, List, Mapping, NamedTuple

from .errors import BackendError, ProtocolViolation


class ScrollPage(NamedTuple):
    """One batch of a scroll export: (scroll_id, hits, total)."""

    scroll_id: str
    hits: List[Dict[str, Any]]
    total: int


def _require_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ProtocolViolation(
            f"Expected an object at '{path}', got {type(value).__name__}"
        )
    return value


def _require_str(container: Mapping[str, Any], key: str) -> str:
    value = container.get(key)
    if not isinstance(value, str) or not value:
        raise ProtocolViolation(f"Response has no usable '{key}'")
    return value


def _require_list(container: Mapping[str, Any], key: str, path: str) -> List[Any]:
    if key not in container:
        raise ProtocolViolation(f"Response has no '{path}' array")
    value = container[key]
    if not isinstance(value, list):
        raise ProtocolViolation(
            f"Expected an array at '{path}', got {type(value).__name__}"
        )
    return value


def _count(value: Any, path: str) -> int:
    # bool is an int subclass; true/false is not a count
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ProtocolViolation(f"Malformed count at '{path}': {value!r}")
    return value


def _total(hits: Mapping[str, Any]) -> int:
    """
    Read hits.total, accepting the 7.x+ object form and the older integer form.

    Absent means 0; present but malformed is a failure.
    """
    if "total" not in hits:
        return 0
    total = hits["total"]
    if isinstance(total, Mapping):
        if "value" not in total:
            return 0
        return _count(total["value"], "hits.total.value")
    return _count(total, "hits.total")


def extract_search_result(response: Any) -> ScrollPage:
    """
    Validate a raw search or scroll response and pull out the next page.

    Args:
        response: Decoded JSON response body

    Returns:
        ScrollPage(scroll_id, hits, total)

    Raises:
        BackendError: the payload carries a non-empty ``error`` value
        ProtocolViolation: the scroll id, hits array or total is missing or malformed
    """
    body = _require_mapping(response, "$")

    error = body.get("error")
    if error:
        raise BackendError(f"Backend reported an error: {error!r}", error=error)

    scroll_id = _require_str(body, "_scroll_id")

    if "hits" not in body:
        raise ProtocolViolation("Response has no 'hits' object")
    hits = _require_mapping(body["hits"], "hits")
    batch = _require_list(hits, "hits", "hits.hits")
    for position, hit in enumerate(batch):
        _require_mapping(hit, f"hits.hits[{position}]")

    return ScrollPage(scroll_id, list(batch), _total(hits))
