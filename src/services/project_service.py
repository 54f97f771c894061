"""Project management service."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Project
from src.exceptions import DuplicateProjectError
from src.parsers.registry import default_registry
from src.schemas.schemas import ProjectCreateRequest, ProjectResponse, ProjectUpdateRequest


class ProjectService:
    """Service for managing projects and their import settings."""

    def _check_parsers(self, skip_imports: list[str]):
        unknown = sorted(set(skip_imports) - set(default_registry.idents))
        if unknown:
            raise ValueError(f"Unknown parser(s) in skip_imports: {', '.join(unknown)}")

    async def create_project(self, db: AsyncSession, request: ProjectCreateRequest) -> Project:
        """
        Create a project.

        Raises:
            ValueError: ``skip_imports`` names a parser that does not exist
            DuplicateProjectError: the name is taken
        """
        self._check_parsers(request.skip_imports)
        project = Project(
            name=request.name,
            repository_url=request.repository_url,
            base_rfc5646_locale=request.base_rfc5646_locale,
            targeted_rfc5646_locales=request.targeted_rfc5646_locales,
            skip_imports=request.skip_imports,
            key_exclusions=request.key_exclusions,
        )
        db.add(project)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateProjectError(request.name) from None
        await db.refresh(project)
        return project

    async def get_project(self, db: AsyncSession, project_id: str) -> Optional[Project]:
        return await db.get(Project, project_id)

    async def get_project_by_name(self, db: AsyncSession, name: str) -> Optional[Project]:
        result = await db.execute(select(Project).where(Project.name == name))
        return result.scalar_one_or_none()

    async def list_projects(self, db: AsyncSession) -> list[Project]:
        result = await db.execute(select(Project).order_by(Project.name))
        return list(result.scalars().all())

    async def update_project(
        self, db: AsyncSession, project: Project, request: ProjectUpdateRequest
    ) -> Project:
        """Apply the fields set on the request. Existing translations are not touched."""
        changes = request.model_dump(exclude_unset=True)
        if changes.get("skip_imports") is not None:
            self._check_parsers(changes["skip_imports"])
        for field, value in changes.items():
            if value is not None or field == "repository_url":
                setattr(project, field, value)
        await db.flush()
        return project

    def project_to_response(self, project: Project) -> ProjectResponse:
        return ProjectResponse(
            id=project.id,
            name=project.name,
            repository_url=project.repository_url,
            base_rfc5646_locale=project.base_rfc5646_locale,
            targeted_rfc5646_locales=project.targeted_rfc5646_locales or {},
            required_rfc5646_locales=project.required_rfc5646_locales,
            skip_imports=project.skip_imports or [],
            key_exclusions=project.key_exclusions or [],
            created_at=project.created_at,
        )


# Singleton instance
project_service = ProjectService()
