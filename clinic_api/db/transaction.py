"""Commit helpers shared by the services."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import ConflictError

logger = logging.getLogger(__name__)


async def commit_or_conflict(session: AsyncSession, message: str) -> None:
    """Commit the session, turning a unique-constraint failure into a conflict.

    The whole unit of work is rolled back before ``ConflictError`` is raised.
    """
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info(f"Integrity error on commit: {exc.orig}")
        raise ConflictError(message) from exc
