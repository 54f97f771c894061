"""Content-addressed blob registry."""

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Blob, Project, new_id, revisions_blobs


def dialect_insert(db: AsyncSession, table):
    """INSERT construct supporting ON CONFLICT for the session's database."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


async def ensure_blob(db: AsyncSession, project: Project, path: str, sha: str) -> Blob:
    """
    Get or create the blob for (project, path, sha).

    The insert is a no-op when a concurrent import already created the row,
    so creation happens exactly once per identity. Existing blobs are returned
    untouched.
    """
    query = select(Blob).where(
        Blob.project_id == project.id,
        Blob.path == path,
        Blob.sha == sha,
    )
    blob = (await db.execute(query)).scalar_one_or_none()
    if blob is not None:
        return blob

    await db.execute(
        dialect_insert(db, Blob)
        .values(id=new_id(), project_id=project.id, path=path, sha=sha, parsed=False)
        .on_conflict_do_nothing(index_elements=["project_id", "path", "sha"])
    )
    return (await db.execute(query)).scalar_one()


async def replace_revision_blobs(db: AsyncSession, revision, blob_ids: set[str]):
    """Make ``blob_ids`` the exact set of blobs imported for the revision."""
    result = await db.execute(
        select(revisions_blobs.c.blob_id).where(revisions_blobs.c.revision_id == revision.id)
    )
    current = set(result.scalars().all())

    if current - blob_ids:
        await db.execute(
            delete(revisions_blobs).where(
                revisions_blobs.c.revision_id == revision.id,
                revisions_blobs.c.blob_id.in_(current - blob_ids),
            )
        )
    if blob_ids - current:
        await db.execute(
            insert(revisions_blobs),
            [{"revision_id": revision.id, "blob_id": blob_id} for blob_id in blob_ids - current],
        )


async def mark_parsed(db: AsyncSession, blob_ids: set[str]):
    if blob_ids:
        await db.execute(
            update(Blob)
            .where(Blob.id.in_(blob_ids), Blob.parsed.is_(False))
            .values(parsed=True)
            .execution_options(synchronize_session="fetch")
        )


async def list_revision_blobs(db: AsyncSession, revision_id: str) -> list[Blob]:
    result = await db.execute(
        select(Blob)
        .join(revisions_blobs, revisions_blobs.c.blob_id == Blob.id)
        .where(revisions_blobs.c.revision_id == revision_id)
        .order_by(Blob.path)
    )
    return list(result.scalars().all())


async def list_project_blobs(db: AsyncSession, project_id: str) -> list[Blob]:
    result = await db.execute(
        select(Blob).where(Blob.project_id == project_id).order_by(Blob.path, Blob.created_at)
    )
    return list(result.scalars().all())
