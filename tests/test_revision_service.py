"""Tests for revision creation, lookup and deletion."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from src.db.models import Blob, Key, Project, Translation, revisions_keys
from src.exceptions import (
    DuplicateRevisionError,
    ObjectNotFoundError,
    RepositoryNotConfiguredError,
    RevisionValidationError,
)
from src.parsers.base import TranslatableUnit
from src.services import events
from src.services.content_store import ensure_blob, replace_revision_blobs
from src.services.key_graph import associate, upsert_key
from src.services.repository import open_repository
from src.services.revision_service import revision_service
from tests.utils import SHA_A, SHA_B, FakeRepository, make_revision


@pytest.mark.asyncio
async def test_create_revision_copies_commit_metadata(db_session, project, repository):
    revision = await make_revision(db_session, project, repository, requested_by_email="dev@example.com")

    assert revision.sha == SHA_A
    assert revision.author == "Sam Doe"
    assert revision.author_email == "sam@example.com"
    assert revision.message == "Update strings"
    assert revision.committed_at.replace(tzinfo=timezone.utc) == datetime(2026, 10, 1, tzinfo=timezone.utc)
    assert revision.requested_by_email == "dev@example.com"
    assert revision.loading is False
    assert revision.ready is False
    assert revision.loaded_at is None
    assert revision.import_state == "not_imported"


@pytest.mark.asyncio
async def test_long_commit_message_is_truncated(db_session, project, repository):
    repository.add_commit(SHA_B, {}, message="x" * 300)

    revision = await make_revision(db_session, project, repository, sha=SHA_B)

    assert len(revision.message) == 256
    assert revision.message.endswith("...")


@pytest.mark.asyncio
async def test_duplicate_sha_fails_validation(db_session, project, repository):
    await make_revision(db_session, project, repository)

    with pytest.raises(RevisionValidationError) as exc_info:
        await revision_service.create_revision(db_session, project, SHA_A, repository=repository)

    assert exc_info.value.field == "sha"
    assert str(exc_info.value) == "sha has already been taken"


@pytest.mark.asyncio
async def test_duplicate_sha_is_rejected_by_the_database(db_session, project, repository):
    await make_revision(db_session, project, repository)

    with pytest.raises(DuplicateRevisionError):
        await revision_service.create_revision(
            db_session, project, SHA_A, repository=repository, validate=False
        )


@pytest.mark.asyncio
async def test_same_sha_in_another_project(db_session, project, repository):
    await make_revision(db_session, project, repository)
    other = Project(
        name="other",
        repository_url="git@github.com:example/other.git",
        base_rfc5646_locale="en",
        targeted_rfc5646_locales={"en": True},
    )
    db_session.add(other)
    await db_session.commit()

    revision = await make_revision(db_session, other, repository)
    assert revision.project_id == other.id


@pytest.mark.asyncio
async def test_unknown_commit_is_fetched_once(db_session, project):
    repository = FakeRepository(remote_only={SHA_B})
    repository.add_commit(SHA_B, {})

    revision = await make_revision(db_session, project, repository, sha=SHA_B)

    assert revision.sha == SHA_B
    assert repository.fetch_calls == 1
    assert repository.resolve_calls == 2


@pytest.mark.asyncio
async def test_missing_commit(db_session, project, repository):
    with pytest.raises(ObjectNotFoundError, match=f"Commit not found in git repo: {SHA_B}"):
        await revision_service.create_revision(db_session, project, SHA_B, repository=repository)

    assert repository.fetch_calls == 1


def test_project_without_repository():
    with pytest.raises(RepositoryNotConfiguredError):
        open_repository(Project(name="orphan", repository_url=None))


@pytest.mark.asyncio
async def test_list_revisions_filters_by_ready(db_session, project, repository):
    repository.add_commit(SHA_B, {})
    first = await make_revision(db_session, project, repository)
    second = await make_revision(db_session, project, repository, sha=SHA_B)
    second.ready = True
    await db_session.commit()

    revisions, total = await revision_service.list_revisions(db_session, project.id)
    assert total == 2
    assert {r.id for r in revisions} == {first.id, second.id}

    revisions, total = await revision_service.list_revisions(db_session, project.id, ready=True)
    assert total == 1
    assert revisions[0].id == second.id

    revisions, total = await revision_service.list_revisions(db_session, project.id, page=2, page_size=1)
    assert total == 2
    assert len(revisions) == 1


@pytest.mark.asyncio
async def test_delete_keeps_keys_and_blobs(db_session, project, repository):
    revision = await make_revision(db_session, project, repository)
    key = await upsert_key(db_session, project, TranslatableUnit(key="greeting", source_copy="Hi", locale="en"))
    blob = await ensure_blob(db_session, project, "en.yml", "1" * 40)
    await associate(db_session, revision, key)
    await replace_revision_blobs(db_session, revision, {blob.id})
    await db_session.commit()

    await revision_service.delete_revision(db_session, revision)
    await db_session.commit()

    assert await revision_service.get_revision(db_session, revision.id) is None
    assert (await db_session.execute(select(func.count()).select_from(Key))).scalar() == 1
    assert (await db_session.execute(select(func.count()).select_from(Blob))).scalar() == 1
    links = select(func.count()).select_from(revisions_keys)
    assert (await db_session.execute(links)).scalar() == 0


@pytest.mark.asyncio
async def test_lifecycle_events(db_session, project, repository):
    seen = []

    def listener(kind, revision):
        seen.append((kind, revision.sha))

    events.add_listener(listener)
    try:
        revision = await make_revision(db_session, project, repository)
        revision.ready = True
        await db_session.commit()
        await revision_service.delete_revision(db_session, revision)
        await db_session.commit()
    finally:
        events.remove_listener(listener)

    assert seen == [
        (events.RevisionEvent.CREATED, SHA_A),
        (events.RevisionEvent.UPDATED, SHA_A),
        (events.RevisionEvent.DESTROYED, SHA_A),
    ]


@pytest.mark.asyncio
async def test_recalculate_applies_newly_required_locales(db_session, project, repository, importer):
    project.targeted_rfc5646_locales = {"en": True, "ja": False}
    await db_session.commit()
    revision = await make_revision(db_session, project, repository)
    await importer.import_strings(db_session, revision, repository=repository)
    assert revision.ready is True

    project.targeted_rfc5646_locales = {"en": True, "ja": False, "de": True}
    await db_session.commit()

    assert await revision_service.recalculate(db_session, revision) is False
    german = select(func.count()).select_from(Translation).where(Translation.rfc5646_locale == "de")
    assert (await db_session.execute(german)).scalar() == 4
