"""Keys, their translations, and key exclusion rules."""

import fnmatch
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import yaml
from sqlalchemy import delete, exists, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Key, Project, Revision, Translation, new_id, revisions_keys
from src.parsers.base import TranslatableUnit
from src.services.content_store import dialect_insert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyFilter:
    """Project-wide exclusion globs plus the revision's own exclusion file."""

    project_patterns: tuple[str, ...] = ()
    revision_patterns: tuple[str, ...] = ()

    @classmethod
    def for_project(cls, project: Project, revision_patterns: Iterable[str] = ()) -> "KeyFilter":
        return cls(tuple(project.key_exclusions or []), tuple(revision_patterns))

    def skip_key(self, key: str) -> bool:
        return any(
            fnmatch.fnmatchcase(key, pattern)
            for pattern in (*self.project_patterns, *self.revision_patterns)
        )


def parse_exclusion_file(content: Optional[bytes]) -> list[str]:
    """
    Read ``key_exclusions`` from a revision's exclusion file.

    Missing files and files without the setting mean no exclusions.
    """
    if not content:
        return []
    data = yaml.safe_load(content)
    if not isinstance(data, dict):
        raise ValueError("exclusion file must contain a mapping")
    patterns = data.get("key_exclusions") or []
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ValueError("key_exclusions must be a list of glob patterns")
    return patterns


async def upsert_key(
    db: AsyncSession,
    project: Project,
    unit: TranslatableUnit,
    importer: Optional[str] = None,
    source: Optional[str] = None,
) -> Key:
    """
    Return the project's key for this unit, creating it if needed.

    Re-importing an unchanged key (same key, source copy and context)
    resolves to the existing row.
    """
    fingerprint = Key.fingerprint_for(unit.key, unit.source_copy, unit.context)
    query = select(Key).where(Key.project_id == project.id, Key.fingerprint == fingerprint)
    key = (await db.execute(query)).scalar_one_or_none()
    if key is not None:
        return key

    await db.execute(
        dialect_insert(db, Key)
        .values(
            id=new_id(),
            project_id=project.id,
            fingerprint=fingerprint,
            key=unit.key,
            original_key=unit.exclusion_key,
            source_copy=unit.source_copy,
            context=unit.context,
            importer=importer,
            source=source,
            other_data=unit.other_data or None,
            ready=True,
        )
        .on_conflict_do_nothing(index_elements=["project_id", "fingerprint"])
    )
    return (await db.execute(query)).scalar_one()


async def ensure_translations(
    db: AsyncSession,
    project: Project,
    key: Key,
    source_locale: Optional[str] = None,
) -> int:
    """
    Create the translations a key is missing.

    The source locale's translation carries the source copy; every other
    targeted locale starts untranslated. Existing copy is never overwritten.
    Returns the number of rows created.
    """
    source_locale = source_locale or project.base_rfc5646_locale
    locales = [source_locale, *(l for l in project.other_rfc5646_locales if l != source_locale)]

    result = await db.execute(
        select(Translation.rfc5646_locale).where(Translation.key_id == key.id)
    )
    existing = set(result.scalars().all())

    rows = [
        {
            "id": new_id(),
            "key_id": key.id,
            "source_rfc5646_locale": source_locale,
            "rfc5646_locale": locale,
            "source_copy": key.source_copy,
            "copy": key.source_copy if locale == source_locale else None,
        }
        for locale in locales
        if locale not in existing
    ]
    if rows:
        await db.execute(
            dialect_insert(db, Translation).on_conflict_do_nothing(
                index_elements=["key_id", "rfc5646_locale"]
            ),
            rows,
        )
    return len(rows)


async def associate(db: AsyncSession, revision: Revision, key: Key):
    """Add a key to a revision's key set. Idempotent."""
    await db.execute(
        dialect_insert(db, revisions_keys)
        .values(revision_id=revision.id, key_id=key.id)
        .on_conflict_do_nothing(index_elements=["revision_id", "key_id"])
    )


async def revision_key_ids(db: AsyncSession, revision_id: str) -> set[str]:
    result = await db.execute(
        select(revisions_keys.c.key_id).where(revisions_keys.c.revision_id == revision_id)
    )
    return set(result.scalars().all())


async def revision_keys_from_sources(
    db: AsyncSession, revision_id: str, sources: Iterable[str]
) -> list[Key]:
    """The revision's keys that were first imported from one of ``sources``."""
    sources = list(sources)
    if not sources:
        return []
    result = await db.execute(
        select(Key)
        .join(revisions_keys, revisions_keys.c.key_id == Key.id)
        .where(revisions_keys.c.revision_id == revision_id, Key.source.in_(sources))
    )
    return list(result.scalars().all())


async def replace_revision_keys(db: AsyncSession, revision: Revision, key_ids: set[str]) -> set[str]:
    """
    Make ``key_ids`` the revision's exact key set.

    Returns the ids of keys that were detached.
    """
    current = await revision_key_ids(db, revision.id)
    detached = current - key_ids
    added = key_ids - current

    if detached:
        await db.execute(
            delete(revisions_keys).where(
                revisions_keys.c.revision_id == revision.id,
                revisions_keys.c.key_id.in_(detached),
            )
        )
    if added:
        await db.execute(
            insert(revisions_keys),
            [{"revision_id": revision.id, "key_id": key_id} for key_id in added],
        )
    return detached


async def prune_orphan_keys(db: AsyncSession, key_ids: Iterable[str]) -> int:
    """
    Delete keys no revision references and that hold no translated copy.

    Copy in the key's own source locale does not count. Returns the number
    of keys deleted.
    """
    key_ids = list(key_ids)
    if not key_ids:
        return 0

    referenced = exists().where(revisions_keys.c.key_id == Key.id)
    translated = exists().where(
        Translation.key_id == Key.id,
        Translation.rfc5646_locale != Translation.source_rfc5646_locale,
        Translation.copy.is_not(None),
    )
    result = await db.execute(
        select(Key.id).where(Key.id.in_(key_ids), ~referenced, ~translated)
    )
    orphans = list(result.scalars().all())
    if not orphans:
        return 0

    await db.execute(delete(Translation).where(Translation.key_id.in_(orphans)))
    await db.execute(delete(Key).where(Key.id.in_(orphans)))
    logger.info(f"Pruned {len(orphans)} orphaned keys")
    return len(orphans)


async def count_keys(db: AsyncSession, project_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(Key).where(Key.project_id == project_id))
    return result.scalar() or 0
