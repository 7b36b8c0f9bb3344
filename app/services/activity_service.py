# app/services/activity_service.py
from sqlalchemy import select, desc, asc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple

from app.core.exceptions import PersistenceFailure
from app.models.activity_models import UserActivity

ALLOWED_SORT_FIELDS = {"id", "username", "role", "created_at"}

async def get_user_activities(
    db: AsyncSession,
    username: Optional[str] = None,
    role: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc"
) -> Tuple[int, List[UserActivity]]:
    try:
        # Validate sort field
        if sort_by not in ALLOWED_SORT_FIELDS:
            sort_by = "created_at"

        sort_column = getattr(UserActivity, sort_by)
        sort_order = desc(sort_column) if order.lower() == "desc" else asc(sort_column)

        # Build filters
        filters = []
        if username:
            filters.append(UserActivity.username.ilike(f"%{username}%"))
        if role:
            filters.append(UserActivity.role == role)

        # Base query
        stmt = select(UserActivity)
        count_stmt = select(func.count(UserActivity.id))
        if filters:
            stmt = stmt.where(*filters)
            count_stmt = count_stmt.where(*filters)

        # Count total
        total_result = await db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Pagination + sorting; id breaks ties between rows from the same second
        stmt = stmt.order_by(sort_order, sort_order_for_id(order)).offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(stmt)
        activities = result.scalars().all()

        return total, activities
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"Failed to fetch activities: {e.__class__.__name__}")


def sort_order_for_id(order: str):
    return desc(UserActivity.id) if order.lower() == "desc" else asc(UserActivity.id)
