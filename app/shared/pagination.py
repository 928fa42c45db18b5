"""Pagination utilities."""

from typing import Any, Dict

from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


class PaginationParams(BaseModel):
    """Pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-based)")
    limit: int = Field(default=10, ge=1, le=100, description="Page size")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_count(total: int, limit: int) -> int:
    """Ceiling division of ``total`` by ``limit``."""
    return (total + limit - 1) // limit


async def paginate(db: AsyncSession, query: Select, pagination: PaginationParams) -> Dict[str, Any]:
    """
    Paginate a SQLAlchemy query.

    Args:
        db: Database session
        query: SQLAlchemy select query
        pagination: Pagination parameters

    Returns:
        Dictionary with pagination info and items
    """

    # Count over the unordered, unpaginated query
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    pages = page_count(total, pagination.limit)

    result = await db.execute(query.offset(pagination.offset).limit(pagination.limit))
    items = result.scalars().all()

    return {
        "items": items,
        "total": total,
        "page": pagination.page,
        "limit": pagination.limit,
        "pages": pages,
        "has_next": pagination.page < pages,
        "has_prev": pagination.page > 1,
    }
