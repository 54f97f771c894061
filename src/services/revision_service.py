"""Revision management service."""

import asyncio
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Key, Project, Revision, revisions_keys
from src.exceptions import DuplicateRevisionError, RevisionValidationError
from src.schemas.schemas import RevisionResponse
from src.services import events  # noqa: F401  (registers revision lifecycle listeners)
from src.services.key_graph import ensure_translations
from src.services.readiness import recalculate_key_ready, recalculate_revision_ready
from src.services.repository import RepositoryAccessor, commit_web_url, find_commit, open_repository

logger = logging.getLogger(__name__)


class RevisionService:
    """Service for creating, reading and deleting revisions."""

    async def sha_taken(
        self,
        db: AsyncSession,
        project_id: str,
        sha: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        query = select(Revision.id).where(Revision.project_id == project_id, Revision.sha == sha)
        if exclude_id:
            query = query.where(Revision.id != exclude_id)
        return (await db.execute(query.limit(1))).first() is not None

    async def create_revision(
        self,
        db: AsyncSession,
        project: Project,
        sha: str,
        requested_by_email: Optional[str] = None,
        repository: Optional[RepositoryAccessor] = None,
        validate: bool = True,
    ) -> Revision:
        """
        Track a commit of the project.

        ``sha`` may be any revision git can resolve; the resolved commit sha is
        stored along with the commit's author, message and date.

        Raises:
            RepositoryNotConfiguredError: the project has no repository
            ObjectNotFoundError: the commit is missing even after a fetch
            RevisionValidationError: the project already tracks the commit
            DuplicateRevisionError: a concurrent request created it first
        """
        repository = repository or open_repository(project)
        handle = await asyncio.to_thread(find_commit, repository, sha)

        if validate and await self.sha_taken(db, project.id, handle.sha):
            raise RevisionValidationError("sha", "has already been taken")

        revision = Revision(
            project_id=project.id,
            sha=handle.sha,
            message=handle.message,
            author=handle.author,
            author_email=handle.author_email,
            committed_at=handle.committed_at,
            requested_by_email=requested_by_email,
            import_errors=[],
        )
        db.add(revision)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateRevisionError(handle.sha) from None

        await db.refresh(revision)
        logger.info(f"Created revision {revision.sha} for project {project.name}")
        return revision

    async def get_revision(
        self,
        db: AsyncSession,
        revision_id: str,
        project_id: Optional[str] = None,
    ) -> Optional[Revision]:
        query = select(Revision).where(Revision.id == revision_id)
        if project_id:
            query = query.where(Revision.project_id == project_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_revision_by_sha(
        self, db: AsyncSession, project_id: str, sha: str
    ) -> Optional[Revision]:
        result = await db.execute(
            select(Revision).where(Revision.project_id == project_id, Revision.sha == sha)
        )
        return result.scalar_one_or_none()

    async def list_revisions(
        self,
        db: AsyncSession,
        project_id: str,
        ready: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Revision], int]:
        """
        List a project's revisions, newest first.

        Returns:
            Tuple of (revisions, total_count)
        """
        query = select(Revision).where(Revision.project_id == project_id)
        if ready is not None:
            query = query.where(Revision.ready.is_(ready))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(Revision.created_at.desc(), Revision.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def count_keys(self, db: AsyncSession, revision_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(revisions_keys)
            .where(revisions_keys.c.revision_id == revision_id)
        )
        return result.scalar() or 0

    async def recalculate(self, db: AsyncSession, revision: Revision) -> bool:
        """
        Recompute every key of the revision, then the revision itself.

        Keys first get translations for locales targeted since their import.
        """
        project = await db.get(Project, revision.project_id)
        result = await db.execute(
            select(Key)
            .join(revisions_keys, revisions_keys.c.key_id == Key.id)
            .where(revisions_keys.c.revision_id == revision.id)
        )
        required_locales = project.required_rfc5646_locales
        for key in result.scalars().all():
            await ensure_translations(db, project, key)
            await recalculate_key_ready(db, key, required_locales)
        await db.flush()
        return await recalculate_revision_ready(db, revision)

    async def delete_revision(self, db: AsyncSession, revision: Revision):
        """Delete a revision. Its keys and blobs stay with the project."""
        await db.delete(revision)
        await db.flush()
        logger.info(f"Deleted revision {revision.sha}")

    def revision_to_response(
        self,
        revision: Revision,
        project: Optional[Project] = None,
        key_count: Optional[int] = None,
    ) -> RevisionResponse:
        """Convert Revision model to response schema."""
        git_url = commit_web_url(project.repository_url, revision.sha) if project else None
        return RevisionResponse(
            id=revision.id,
            project_id=revision.project_id,
            sha=revision.sha,
            message=revision.message,
            author=revision.author,
            author_email=revision.author_email,
            requested_by_email=revision.requested_by_email,
            committed_at=revision.committed_at,
            import_state=revision.import_state,
            loading=revision.loading,
            ready=revision.ready,
            import_errors=revision.import_errors or [],
            git_url=git_url,
            key_count=key_count,
            created_at=revision.created_at,
            loaded_at=revision.loaded_at,
            approved_at=revision.approved_at,
        )


# Singleton instance
revision_service = RevisionService()
