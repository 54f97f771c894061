"""Project API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.schemas.schemas import ProjectCreateRequest, ProjectResponse, ProjectUpdateRequest
from src.services.project_service import project_service

router = APIRouter(prefix="/v1/projects", tags=["Projects"])


async def get_project_or_404(project_id: str, db: AsyncSession = Depends(get_db)):
    project = await project_service.get_project(db, project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found",
        )
    return project


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(request: ProjectCreateRequest, db: AsyncSession = Depends(get_db)):
    """
    Create a project.

    - **repository_url**: git remote imports read from
    - **targeted_rfc5646_locales**: locale to required flag, e.g. `{"fr": true, "ja": false}`
    - **skip_imports**: parser identifiers disabled for this project
    - **key_exclusions**: glob patterns of keys never imported
    """
    try:
        project = await project_service.create_project(db, request)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await db.commit()
    return project_service.project_to_response(project)


@router.get("", response_model=list[ProjectResponse], summary="List projects")
async def list_projects(db: AsyncSession = Depends(get_db)):
    projects = await project_service.list_projects(db)
    return [project_service.project_to_response(p) for p in projects]


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get a project")
async def get_project(project=Depends(get_project_or_404)):
    return project_service.project_to_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse, summary="Update a project")
async def update_project(
    request: ProjectUpdateRequest,
    project=Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
):
    """Update import settings. Readiness is not recomputed until the next import or recalculation."""
    try:
        project = await project_service.update_project(db, project, request)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await db.commit()
    return project_service.project_to_response(project)
