from __future__ import annotations

from typing import Callable


def paginate(query, page: int | None, per_page: int | None, serialize: Callable | None = None) -> dict:
    """
    Page through an ordered query.

    page=None returns everything without pagination metadata.
    """
    serialize = serialize or (lambda row: row.to_dict())

    if page is None:
        rows = query.all()
        return {
            "items": [serialize(row) for row in rows],
            "count": len(rows),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    per_page = max(per_page, 1)
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(row) for row in rows],
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
