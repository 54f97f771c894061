"""Tests for keys, translations and exclusion rules."""

import pytest
from sqlalchemy import func, select

from src.db.models import Key, Project, Translation
from src.parsers.base import TranslatableUnit
from src.services.key_graph import (
    KeyFilter,
    associate,
    count_keys,
    ensure_translations,
    parse_exclusion_file,
    prune_orphan_keys,
    replace_revision_keys,
    revision_key_ids,
    upsert_key,
)
from tests.utils import SHA_B, make_revision


def unit(key="greeting", copy="Hello", context=None, original_key=None):
    return TranslatableUnit(
        key=key, source_copy=copy, locale="en", original_key=original_key, context=context
    )


async def translations_for(db, key) -> dict[str, Translation]:
    result = await db.execute(select(Translation).where(Translation.key_id == key.id))
    return {t.rfc5646_locale: t for t in result.scalars().all()}


@pytest.mark.asyncio
async def test_upsert_key_is_idempotent(db_session, project):
    first = await upsert_key(db_session, project, unit(), importer="yaml", source="en.yml")
    second = await upsert_key(db_session, project, unit(), importer="yaml", source="en.yml")

    assert first.id == second.id
    assert first.importer == "yaml"
    assert await count_keys(db_session, project.id) == 1


@pytest.mark.asyncio
async def test_changed_copy_or_context_is_a_new_key(db_session, project):
    base = await upsert_key(db_session, project, unit())
    new_copy = await upsert_key(db_session, project, unit(copy="Hi"))
    new_context = await upsert_key(db_session, project, unit(context="Home screen"))

    assert len({base.id, new_copy.id, new_context.id}) == 3
    assert await count_keys(db_session, project.id) == 3


@pytest.mark.asyncio
async def test_original_key_defaults_to_key(db_session, project):
    key = await upsert_key(db_session, project, unit(key="a.strings:save"))
    scoped = await upsert_key(db_session, project, unit(key="b.strings:save", original_key="save"))

    assert key.original_key == "a.strings:save"
    assert scoped.original_key == "save"


@pytest.mark.asyncio
async def test_ensure_translations(db_session, project):
    key = await upsert_key(db_session, project, unit())

    assert await ensure_translations(db_session, project, key) == 3
    translations = await translations_for(db_session, key)

    assert set(translations) == {"en", "fr", "ja"}
    assert translations["en"].copy == "Hello"
    assert translations["fr"].copy is None
    assert translations["ja"].copy is None
    assert all(t.source_rfc5646_locale == "en" for t in translations.values())
    assert all(t.source_copy == "Hello" for t in translations.values())


@pytest.mark.asyncio
async def test_ensure_translations_never_overwrites(db_session, project):
    key = await upsert_key(db_session, project, unit())
    await ensure_translations(db_session, project, key)
    translations = await translations_for(db_session, key)
    translations["fr"].copy = "Bonjour"
    await db_session.flush()

    assert await ensure_translations(db_session, project, key) == 0
    assert (await translations_for(db_session, key))["fr"].copy == "Bonjour"


@pytest.mark.asyncio
async def test_new_targeted_locale_is_filled_in(db_session, project):
    key = await upsert_key(db_session, project, unit())
    await ensure_translations(db_session, project, key)

    project.targeted_rfc5646_locales = {**project.targeted_rfc5646_locales, "de": False}
    assert await ensure_translations(db_session, project, key) == 1
    assert "de" in await translations_for(db_session, key)


class TestKeyFilter:
    def test_project_patterns(self):
        project = Project(name="p", key_exclusions=["admin.*", "*.debug"])
        key_filter = KeyFilter.for_project(project)

        assert key_filter.skip_key("admin.title")
        assert key_filter.skip_key("home.debug")
        assert not key_filter.skip_key("home.title")

    def test_revision_patterns_add_to_project_patterns(self):
        project = Project(name="p", key_exclusions=["admin.*"])
        key_filter = KeyFilter.for_project(project, ["legacy.*"])

        assert key_filter.skip_key("admin.title")
        assert key_filter.skip_key("legacy.banner")
        assert not key_filter.skip_key("home.title")

    def test_matching_is_case_sensitive(self):
        project = Project(name="p", key_exclusions=[])
        key_filter = KeyFilter.for_project(project, ["Admin.*"])
        assert not key_filter.skip_key("admin.title")


class TestExclusionFile:
    def test_reads_patterns(self):
        assert parse_exclusion_file(b"key_exclusions:\n  - nav.*\n  - '*.debug'\n") == ["nav.*", "*.debug"]

    def test_missing_setting_or_empty_file(self):
        assert parse_exclusion_file(b"") == []
        assert parse_exclusion_file(None) == []
        assert parse_exclusion_file(b"other_setting: true\n") == []

    def test_invalid_file(self):
        with pytest.raises(ValueError):
            parse_exclusion_file(b"- just\n- a list\n")
        with pytest.raises(ValueError):
            parse_exclusion_file(b"key_exclusions: nav.*\n")


@pytest.mark.asyncio
async def test_associate_is_idempotent(db_session, project, repository):
    revision = await make_revision(db_session, project, repository)
    key = await upsert_key(db_session, project, unit())

    await associate(db_session, revision, key)
    await associate(db_session, revision, key)

    assert await revision_key_ids(db_session, revision.id) == {key.id}


@pytest.mark.asyncio
async def test_replace_revision_keys_reports_detached(db_session, project, repository):
    revision = await make_revision(db_session, project, repository)
    a = await upsert_key(db_session, project, unit(key="a"))
    b = await upsert_key(db_session, project, unit(key="b"))
    c = await upsert_key(db_session, project, unit(key="c"))

    assert await replace_revision_keys(db_session, revision, {a.id, b.id}) == set()
    assert await replace_revision_keys(db_session, revision, {b.id, c.id}) == {a.id}
    assert await revision_key_ids(db_session, revision.id) == {b.id, c.id}


@pytest.mark.asyncio
async def test_prune_orphan_keys(db_session, project, repository):
    repository.add_commit(SHA_B, {})
    other = await make_revision(db_session, project, repository, sha=SHA_B)

    orphan = await upsert_key(db_session, project, unit(key="orphan"))
    shared = await upsert_key(db_session, project, unit(key="shared"))
    translated = await upsert_key(db_session, project, unit(key="translated"))
    for key in (orphan, shared, translated):
        await ensure_translations(db_session, project, key)
    (await translations_for(db_session, translated))["fr"].copy = "Traduit"
    await associate(db_session, other, shared)
    await db_session.flush()

    pruned = await prune_orphan_keys(db_session, [orphan.id, shared.id, translated.id])

    assert pruned == 1
    remaining = set((await db_session.execute(select(Key.key))).scalars().all())
    assert remaining == {"shared", "translated"}
    count = select(func.count()).select_from(Translation).where(Translation.key_id == orphan.id)
    assert (await db_session.execute(count)).scalar() == 0
