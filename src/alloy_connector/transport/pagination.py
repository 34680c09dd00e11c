"""Response-envelope unwrapping and page-cursor derivation.

Alloy list endpoints are inconsistent about where the records live. Lookups
follow a fixed order: the resource-specific key (``documents``, ``entities``,
...), then ``data``, then the bare body if it is already a list.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from alloy_connector.models.pagination import PaginationParams, PaginationState

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 25
FETCH_ALL_LIMIT = 100

# Resource category -> wrapper keys tried before the generic ``data`` key.
COLLECTION_KEYS: dict[str, tuple[str, ...]] = {
    "entity": ("entities",),
    "evaluation": ("evaluations",),
    "document": ("documents",),
    "event": ("events",),
    "case": ("cases",),
    "journey": ("journeys",),
}


def collection_keys_for(resource: str) -> tuple[str, ...]:
    return COLLECTION_KEYS.get(resource, ()) + ("data",)


def unwrap_collection(body: Any, keys: Sequence[str] = ("data",)) -> list[Any] | None:
    """Return the record list inside *body*, or None if there is none."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in keys:
            value = body.get(key)
            if isinstance(value, list):
                return value
    return None


def page_items(body: Any) -> list[Any]:
    """Records of one paginated response: ``data``, a bare list, or ``[body]``."""
    items = unwrap_collection(body, ("data",))
    if items is not None:
        return items
    if body in (None, "", {}):
        return []
    return [body]


def build_query(
    pagination: PaginationParams,
    filters: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Flatten the page window and filters into query-string parameters."""
    params: dict[str, Any] = {
        "page": pagination.page or DEFAULT_PAGE,
        "limit": pagination.limit or DEFAULT_LIMIT,
    }
    if pagination.sort:
        params["sort"] = pagination.sort
    if pagination.order:
        params["order"] = pagination.order
    for key, value in (filters or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        params[key] = value
    return params


def pagination_state(body: Any, requested: dict[str, Any]) -> PaginationState:
    """Derive the cursor, falling back to the requested window.

    A missing ``has_more`` means there are no further pages.
    """
    meta = body if isinstance(body, dict) else {}
    return PaginationState(
        page=meta.get("page") or requested["page"],
        limit=meta.get("limit") or requested["limit"],
        total=meta.get("total") or 0,
        has_more=bool(meta.get("has_more", False)),
    )
