"""Page/limit normalization and "name,-created_at" sort parsing for list endpoints."""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy.orm import InstrumentedAttribute, Query

from app.core.errors import ValidationFailed
from app.schemas.common import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, PageMeta


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def resolve_page(page: int | None, limit: int | None) -> PageRequest:
    """Clamp to page >= 1 and 1 <= limit <= MAX_LIMIT."""
    page = DEFAULT_PAGE if page is None else max(page, 1)
    limit = DEFAULT_LIMIT if limit is None else min(max(limit, 1), MAX_LIMIT)
    return PageRequest(page=page, limit=limit)


def page_meta(request: PageRequest, total: int) -> PageMeta:
    return PageMeta(
        page=request.page,
        limit=request.limit,
        total=total,
        total_pages=math.ceil(total / request.limit) if total else 0,
    )


def parse_sort(
    sort: str | None,
    allowed: Mapping[str, InstrumentedAttribute],
    default: str,
) -> list:
    """
    Turn "name,-created_at" into ORDER BY clauses. A leading "-" means descending.
    Unknown fields fail ValidationFailed instead of reaching SQL.
    """
    clauses = []
    for part in (sort or default).split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("-")
        column = allowed.get(name)
        if column is None:
            raise ValidationFailed(
                f"Cannot sort by {name!r}",
                details=[{"field": "sort", "issue": f"Allowed: {', '.join(sorted(allowed))}"}],
            )
        clauses.append(column.desc() if descending else column.asc())
    return clauses


def paginate(query: Query, request: PageRequest) -> tuple[list, PageMeta]:
    """Run count + one page of query."""
    total = query.order_by(None).count()
    items = query.offset(request.offset).limit(request.limit).all()
    return items, page_meta(request, total)
