"""Revision API routes."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.projects import get_project_or_404
from src.db.models import Project
from src.db.session import get_db
from src.schemas.schemas import (
    ImportQueuedResponse,
    ImportReportResponse,
    KeyResponse,
    RevisionCreateRequest,
    RevisionListResponse,
    RevisionResponse,
)
from src.services.importer import ImportService, get_import_service
from src.services.repository import get_repository_factory
from src.services.revision_service import revision_service
from src.services.translation_service import translation_service
from src.worker import get_import_queue

router = APIRouter(prefix="/v1/projects/{project_id}/revisions", tags=["Revisions"])


async def get_revision_or_404(
    revision_id: str,
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
):
    revision = await revision_service.get_revision(db, revision_id, project.id)
    if not revision:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Revision {revision_id} not found",
        )
    return revision


@router.post(
    "",
    response_model=RevisionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track a commit",
    description="Resolve a commit in the project's repository and create a revision for it.",
)
async def create_revision(
    request: RevisionCreateRequest,
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
    repository_factory=Depends(get_repository_factory),
    enqueue_import=Depends(get_import_queue),
):
    """
    Create a revision.

    - **sha**: commit sha (or any ref git can resolve)
    - **requested_by_email**: receives import error notifications
    - **import_now**: queue the import right away (default true)
    """
    revision = await revision_service.create_revision(
        db,
        project,
        request.sha,
        requested_by_email=request.requested_by_email,
        repository=repository_factory(project),
    )
    await db.commit()

    if request.import_now:
        enqueue_import(revision.id)

    return revision_service.revision_to_response(revision, project)


@router.get(
    "",
    response_model=RevisionListResponse,
    summary="List revisions",
)
async def list_revisions(
    ready: Optional[bool] = Query(None, description="Only ready (true) or unready (false) revisions"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
):
    revisions, total = await revision_service.list_revisions(db, project.id, ready, page, page_size)
    total_pages = (total + page_size - 1) // page_size

    return RevisionListResponse(
        revisions=[revision_service.revision_to_response(r, project) for r in revisions],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get("/{revision_id}", response_model=RevisionResponse, summary="Get a revision")
async def get_revision(
    revision=Depends(get_revision_or_404),
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
):
    key_count = await revision_service.count_keys(db, revision.id)
    return revision_service.revision_to_response(revision, project, key_count)


@router.get("/{revision_id}/keys", response_model=list[KeyResponse], summary="List a revision's keys")
async def list_revision_keys(
    revision=Depends(get_revision_or_404),
    db: AsyncSession = Depends(get_db),
):
    keys = await translation_service.list_revision_keys(db, revision.id)
    return [KeyResponse.model_validate(k) for k in keys]


@router.post(
    "/{revision_id}/import",
    summary="Import a revision",
    description="Queue a (re)import, or run it in-process with `wait=true`.",
    responses={200: {"model": ImportReportResponse}, 202: {"model": ImportQueuedResponse}},
)
async def import_revision(
    response: Response,
    wait: bool = Query(False, description="Run the import before responding"),
    revision=Depends(get_revision_or_404),
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
    repository_factory=Depends(get_repository_factory),
    enqueue_import=Depends(get_import_queue),
    importer: ImportService = Depends(get_import_service),
):
    if revision.loading:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Revision {revision.sha} is already being imported",
        )

    if not wait:
        task_id = enqueue_import(revision.id)
        response.status_code = status.HTTP_202_ACCEPTED
        return ImportQueuedResponse(revision_id=revision.id, task_id=task_id)

    report = await importer.import_strings(db, revision, repository=repository_factory(project))
    return ImportReportResponse(**asdict(report))


@router.post(
    "/{revision_id}/recalculate",
    response_model=RevisionResponse,
    summary="Recalculate readiness",
)
async def recalculate_revision(
    revision=Depends(get_revision_or_404),
    project: Project = Depends(get_project_or_404),
    db: AsyncSession = Depends(get_db),
):
    await revision_service.recalculate(db, revision)
    await db.commit()
    return revision_service.revision_to_response(revision, project)


@router.delete(
    "/{revision_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a revision",
    description="Delete a revision. Keys and blobs stay with the project.",
)
async def delete_revision(
    revision=Depends(get_revision_or_404),
    db: AsyncSession = Depends(get_db),
):
    await revision_service.delete_revision(db, revision)
    await db.commit()
