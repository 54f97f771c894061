"""Key and translation API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Project
from src.db.session import get_db
from src.schemas.schemas import (
    TranslationResponse,
    TranslationUpdateRequest,
    TranslationUpdateResponse,
)
from src.services.revision_service import revision_service
from src.services.translation_service import translation_service

router = APIRouter(prefix="/v1", tags=["Translations"])


@router.get(
    "/keys/{key_id}/translations",
    response_model=list[TranslationResponse],
    summary="List a key's translations",
)
async def list_translations(key_id: str, db: AsyncSession = Depends(get_db)):
    translations = await translation_service.list_translations(db, key_id)
    return [TranslationResponse.model_validate(t) for t in translations]


@router.patch(
    "/translations/{translation_id}",
    response_model=TranslationUpdateResponse,
    summary="Edit a translation",
    description="Set or clear copy and notes; readiness of the key and its revisions is recomputed.",
)
async def update_translation(
    translation_id: str,
    request: TranslationUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    translation = await translation_service.get_translation(db, translation_id)
    if not translation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Translation {translation_id} not found",
        )

    key_ready, revisions = await translation_service.update_translation(
        db, translation, **request.model_dump(exclude_unset=True, by_alias=True)
    )
    await db.commit()

    projects = {}
    for revision in revisions:
        if revision.project_id not in projects:
            projects[revision.project_id] = await db.get(Project, revision.project_id)

    return TranslationUpdateResponse(
        translation=TranslationResponse.model_validate(translation),
        key_ready=key_ready,
        revisions=[
            revision_service.revision_to_response(r, projects[r.project_id]) for r in revisions
        ],
    )
