"""Tests for the translation -> key -> revision readiness cascade."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from src.db.models import Translation, utcnow
from src.parsers.base import TranslatableUnit
from src.services.key_graph import associate, ensure_translations, upsert_key
from src.services.readiness import (
    recalculate_for_translation,
    recalculate_key_ready,
    recalculate_revision_ready,
)
from tests.utils import SHA_A, SHA_B, make_revision

T1 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 10, 2, 12, 0, tzinfo=timezone.utc)


async def make_key(db, project, name="greeting"):
    key = await upsert_key(db, project, TranslatableUnit(key=name, source_copy="Hello", locale="en"))
    await ensure_translations(db, project, key)
    return key


async def translation(db, key, locale) -> Translation:
    result = await db.execute(
        select(Translation).where(Translation.key_id == key.id, Translation.rfc5646_locale == locale)
    )
    return result.scalar_one()


async def loaded_revision(db, project, repository, sha=SHA_A):
    revision = await make_revision(db, project, repository, sha=sha)
    revision.loaded_at = utcnow()
    return revision


@pytest.mark.asyncio
async def test_key_ready_requires_copy_in_required_locales(db_session, project):
    key = await make_key(db_session, project)
    assert await recalculate_key_ready(db_session, key) is False

    (await translation(db_session, key, "fr")).copy = "Bonjour"
    assert await recalculate_key_ready(db_session, key) is True
    assert key.ready is True


@pytest.mark.asyncio
async def test_optional_locales_do_not_block(db_session, project):
    key = await make_key(db_session, project)
    (await translation(db_session, key, "fr")).copy = "Bonjour"

    assert (await translation(db_session, key, "ja")).copy is None
    assert await recalculate_key_ready(db_session, key) is True


@pytest.mark.asyncio
async def test_key_without_required_translations_is_ready(db_session, project):
    project.targeted_rfc5646_locales = {"ja": False}
    key = await make_key(db_session, project)

    assert await recalculate_key_ready(db_session, key) is True


@pytest.mark.asyncio
async def test_unloaded_revision_is_never_ready(db_session, project, repository):
    revision = await make_revision(db_session, project, repository)

    assert await recalculate_revision_ready(db_session, revision) is False
    assert revision.approved_at is None


@pytest.mark.asyncio
async def test_loading_or_errored_revision_is_not_ready(db_session, project, repository):
    revision = await loaded_revision(db_session, project, repository)

    revision.loading = True
    assert await recalculate_revision_ready(db_session, revision) is False

    revision.loading = False
    revision.import_errors = [["JSONDecodeError", "Expecting value (in en.json)"]]
    assert await recalculate_revision_ready(db_session, revision) is False
    assert revision.approved_at is None


@pytest.mark.asyncio
async def test_revision_without_keys_is_ready(db_session, project, repository):
    revision = await loaded_revision(db_session, project, repository)

    assert await recalculate_revision_ready(db_session, revision, now=T1) is True
    assert revision.approved_at == T1


@pytest.mark.asyncio
async def test_approved_at_tracks_transitions_into_ready(db_session, project, repository):
    revision = await loaded_revision(db_session, project, repository)
    key = await make_key(db_session, project)
    await associate(db_session, revision, key)
    fr = await translation(db_session, key, "fr")

    await recalculate_key_ready(db_session, key)
    assert await recalculate_revision_ready(db_session, revision, now=T1) is False
    assert revision.approved_at is None

    fr.copy = "Bonjour"
    await recalculate_for_translation(db_session, fr, now=T1)
    assert revision.ready is True
    assert revision.approved_at == T1

    # Recomputing while still ready keeps the stamp
    await recalculate_revision_ready(db_session, revision, now=T2)
    assert revision.approved_at == T1

    fr.copy = None
    await recalculate_for_translation(db_session, fr, now=T2)
    assert revision.ready is False
    assert revision.approved_at == T1

    fr.copy = "Salut"
    await recalculate_for_translation(db_session, fr, now=T2)
    assert revision.ready is True
    assert revision.approved_at == T2


@pytest.mark.asyncio
async def test_translation_change_reaches_every_sharing_revision(db_session, project, repository):
    repository.add_commit(SHA_B, {})
    first = await loaded_revision(db_session, project, repository)
    second = await loaded_revision(db_session, project, repository, sha=SHA_B)
    key = await make_key(db_session, project)
    await associate(db_session, first, key)
    await associate(db_session, second, key)

    fr = await translation(db_session, key, "fr")
    fr.copy = "Bonjour"
    revisions = await recalculate_for_translation(db_session, fr, now=T1)

    assert {r.id for r in revisions} == {first.id, second.id}
    assert first.ready is True
    assert second.ready is True
