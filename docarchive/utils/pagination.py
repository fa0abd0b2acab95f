"""
Pagination Utilities

Offset pagination with ``page``/``limit`` query parameters plus a whitelist
based ``sortBy`` parser (``-createdAt`` sorts descending).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class PageParams:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page"),
) -> PageParams:
    return PageParams(page=page, limit=limit)


async def paginate(db: AsyncSession, stmt: Select, params: PageParams) -> tuple[list[Any], int]:
    """
    Run ``stmt`` for one page and count the full result.

    Returns:
        (items, total)
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(stmt.offset(params.offset).limit(params.limit))
    return list(result.scalars().unique().all()), total


def pagination_meta(total: int, params: PageParams, results: int) -> dict[str, int]:
    return {
        "results": results,
        "total": total,
        "page": params.page,
        "pages": math.ceil(total / params.limit) if total else 0,
    }


def apply_sort(stmt: Select, sort_by: str | None, columns: dict[str, Any], default: str = "-createdAt") -> Select:
    """
    Order ``stmt`` by a comma separated ``sortBy`` expression.

    Unknown fields are ignored; when nothing valid remains ``default`` is used.
    """
    clauses = []
    for raw in (sort_by or "").split(","):
        field = raw.strip()
        if not field:
            continue
        descending = field.startswith("-")
        column = columns.get(field.lstrip("-+"))
        if column is None:
            logger.debug(f"Ignoring unknown sort field '{field}'")
            continue
        clauses.append(column.desc() if descending else column.asc())

    if not clauses and default:
        return apply_sort(stmt, default, columns, default="")
    return stmt.order_by(*clauses)


def like_pattern(term: str) -> str:
    """Lower-cased ``%term%`` with LIKE wildcards escaped (use with ``escape='\\\\'``)."""
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
