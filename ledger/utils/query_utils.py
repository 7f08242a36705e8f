import math
from typing import Any, Dict


def build_pagination(page: int, limit: int, total: int, returned: int) -> Dict[str, Any]:
    """Pagination metadata returned alongside every paged listing."""
    skip = (page - 1) * limit
    return {
        'currentPage': page,
        'totalPages': math.ceil(total / limit) if limit else 0,
        'totalCount': total,
        'hasNext': skip + returned < total,
        'hasPrev': page > 1,
    }


def paginate_query(query, page: int, limit: int):
    """Return (items, pagination) for an already ordered query."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, build_pagination(page, limit, total, len(items))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally (escape char '\\')."""
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
