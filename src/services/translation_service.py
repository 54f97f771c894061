"""Translation editing and key lookups."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Key, Revision, Translation, revisions_keys
from src.services.readiness import recalculate_for_translation

logger = logging.getLogger(__name__)

_UNSET = object()


class TranslationService:
    """Service for reading keys and editing their translations."""

    async def get_translation(self, db: AsyncSession, translation_id: str) -> Optional[Translation]:
        return await db.get(Translation, translation_id)

    async def list_translations(self, db: AsyncSession, key_id: str) -> list[Translation]:
        result = await db.execute(
            select(Translation)
            .where(Translation.key_id == key_id)
            .order_by(Translation.rfc5646_locale)
        )
        return list(result.scalars().all())

    async def list_revision_keys(self, db: AsyncSession, revision_id: str) -> list[Key]:
        result = await db.execute(
            select(Key)
            .join(revisions_keys, revisions_keys.c.key_id == Key.id)
            .where(revisions_keys.c.revision_id == revision_id)
            .order_by(Key.key)
        )
        return list(result.scalars().all())

    async def update_translation(
        self,
        db: AsyncSession,
        translation: Translation,
        copy=_UNSET,
        notes=_UNSET,
    ) -> tuple[bool, list[Revision]]:
        """
        Edit a translation and cascade readiness to its key and revisions.

        Only the arguments passed are changed; ``copy=None`` marks the
        translation untranslated.

        Returns:
            Tuple of (key_ready, recalculated_revisions)
        """
        if copy is not _UNSET:
            translation.copy = copy
        if notes is not _UNSET:
            translation.notes = notes
        await db.flush()

        revisions = await recalculate_for_translation(db, translation)
        key = await db.get(Key, translation.key_id)
        logger.info(
            f"Translation {translation.id} ({translation.rfc5646_locale}) updated; "
            f"{len(revisions)} revision(s) recalculated"
        )
        return key.ready, revisions


# Singleton instance
translation_service = TranslationService()
