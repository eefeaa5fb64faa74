# Overview: Shared list/pagination envelope for service-layer listings.

from __future__ import annotations

from typing import Callable

from ..validation import MAX_DB_INTEGER

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100
MAX_PAGE = MAX_DB_INTEGER // MAX_PER_PAGE


def paginate(base_query, *, page: int | None, per_page: int | None, serialize: Callable) -> dict:
    """
    Run base_query and wrap the rows in the listing envelope.

    If page is None every row is returned; otherwise the page is clamped to
    1..MAX_PAGE and per_page to MAX_PER_PAGE.
    """
    # If no pagination requested, return all items
    if page is None:
        rows = base_query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    per_page = min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE)
    per_page = max(per_page, 1)
    page = min(max(page, 1), MAX_PAGE)

    total = base_query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
