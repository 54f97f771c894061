"""Readiness cascade: translation -> key -> revision."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Key, Project, Revision, Translation, revisions_keys, utcnow

logger = logging.getLogger(__name__)


async def recalculate_key_ready(
    db: AsyncSession,
    key: Key,
    required_locales: Optional[list[str]] = None,
) -> bool:
    """
    A key is ready when every translation it has in a required locale has copy.

    A key without translations in the required locales is vacuously ready.
    """
    if required_locales is None:
        project = await db.get(Project, key.project_id)
        required_locales = project.required_rfc5646_locales

    ready = True
    if required_locales:
        result = await db.execute(
            select(func.count())
            .select_from(Translation)
            .where(
                Translation.key_id == key.id,
                Translation.rfc5646_locale.in_(required_locales),
                Translation.copy.is_(None),
            )
        )
        ready = (result.scalar() or 0) == 0

    key.ready = ready
    return ready


async def recalculate_revision_ready(
    db: AsyncSession,
    revision: Revision,
    now: Optional[datetime] = None,
) -> bool:
    """
    Recompute a revision's readiness from its keys.

    A revision that never finished loading, is loading, or has import errors
    is not ready, and ``approved_at`` is left alone. Otherwise it is ready when
    all of its keys are. Every transition into ready stamps ``approved_at``;
    dropping out of ready keeps the previous stamp.
    """
    if revision.loaded_at is None or revision.loading or revision.import_errors:
        revision.ready = False
        return False

    result = await db.execute(
        select(func.count())
        .select_from(revisions_keys)
        .join(Key, Key.id == revisions_keys.c.key_id)
        .where(revisions_keys.c.revision_id == revision.id, Key.ready.is_(False))
    )
    ready = (result.scalar() or 0) == 0

    if ready and not revision.ready:
        revision.approved_at = now or utcnow()
        logger.info(f"Revision {revision.sha} is ready")
    revision.ready = ready
    return ready


async def revisions_for_key(db: AsyncSession, key_id: str) -> list[Revision]:
    result = await db.execute(
        select(Revision)
        .join(revisions_keys, revisions_keys.c.revision_id == Revision.id)
        .where(revisions_keys.c.key_id == key_id)
    )
    return list(result.scalars().all())


async def recalculate_for_translation(
    db: AsyncSession,
    translation: Translation,
    now: Optional[datetime] = None,
) -> list[Revision]:
    """
    Cascade a translation change to its key and every revision sharing that key.

    Returns the revisions that were recalculated.
    """
    key = await db.get(Key, translation.key_id)
    await recalculate_key_ready(db, key)
    await db.flush()

    revisions = await revisions_for_key(db, key.id)
    for revision in revisions:
        await recalculate_revision_ready(db, revision, now=now)
    return revisions
