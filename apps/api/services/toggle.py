"""Create-if-absent / delete-if-present membership toggling."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def toggle_membership(db: AsyncSession, model: Any, key: Dict[str, Any]) -> bool:
    """Flip membership of ``key`` in ``model`` and return the resulting state.

    The delete runs first as a single statement, so a present row is removed
    atomically. When nothing was deleted a row is inserted; the uniqueness
    constraint on ``key`` turns a concurrent insert by the same actor into an
    ``IntegrityError``, after which the stored state is reread instead of
    creating a duplicate.
    """
    criteria = [getattr(model, column) == value for column, value in key.items()]

    result = await db.execute(delete(model).where(*criteria))
    if result.rowcount:
        await db.commit()
        return False

    db.add(model(**key))
    try:
        await db.commit()
        return True
    except IntegrityError:
        await db.rollback()
        logger.info("toggle_conflict model=%s key=%s", model.__tablename__, key)
        existing = await db.execute(select(model.id).where(*criteria).limit(1))
        return existing.scalar_one_or_none() is not None
