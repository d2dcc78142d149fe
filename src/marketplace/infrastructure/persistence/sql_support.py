"""Helpers shared by the SQL repositories."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession


async def guarded_update(
    session: AsyncSession,
    table: sa.Table,
    row_id: str,
    guard: sa.ColumnElement[bool] | None,
    values: dict[str, Any],
) -> bool:
    """Compare-and-swap write: UPDATE ... WHERE id = :id AND <guard>.

    The guard is evaluated by the database at write time, so a concurrent
    writer that changed the row first makes this return False instead of
    being silently overwritten.
    """
    stmt = sa.update(table).where(table.c.id == row_id)
    if guard is not None:
        stmt = stmt.where(guard)
    result = await session.execute(stmt.values(**values))
    return result.rowcount == 1


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
