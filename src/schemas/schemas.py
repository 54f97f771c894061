"""Pydantic schemas for request/response validation."""

import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============== Locales ==============

RFC5646_PATTERN = re.compile(r"^[a-zA-Z]{2,3}(?:-[a-zA-Z0-9]{2,8})*$")


def validate_locale(locale: str) -> str:
    locale = locale.strip()
    if not RFC5646_PATTERN.match(locale):
        raise ValueError(f"Invalid RFC 5646 locale: {locale}")
    return locale


# ============== Project Schemas ==============


class ProjectCreateRequest(BaseModel):
    """Request to create a project."""

    name: str = Field(..., min_length=1, max_length=256)
    repository_url: Optional[str] = Field(None, description="Git remote to import from")
    base_rfc5646_locale: str = Field("en", description="Locale the source copy is written in")
    targeted_rfc5646_locales: dict[str, bool] = Field(
        default_factory=dict, description="Targeted locales mapped to their required flag"
    )
    skip_imports: list[str] = Field(default_factory=list, description="Disabled parser idents")
    key_exclusions: list[str] = Field(default_factory=list, description="Key glob patterns")

    @field_validator("base_rfc5646_locale")
    @classmethod
    def check_base_locale(cls, v: str) -> str:
        return validate_locale(v)

    @field_validator("targeted_rfc5646_locales")
    @classmethod
    def check_targeted_locales(cls, v: dict[str, bool]) -> dict[str, bool]:
        return {validate_locale(locale): required for locale, required in v.items()}


class ProjectUpdateRequest(BaseModel):
    """Partial project update; omitted fields are left alone."""

    repository_url: Optional[str] = None
    base_rfc5646_locale: Optional[str] = None
    targeted_rfc5646_locales: Optional[dict[str, bool]] = None
    skip_imports: Optional[list[str]] = None
    key_exclusions: Optional[list[str]] = None

    @field_validator("base_rfc5646_locale")
    @classmethod
    def check_base_locale(cls, v: Optional[str]) -> Optional[str]:
        return validate_locale(v) if v is not None else v

    @field_validator("targeted_rfc5646_locales")
    @classmethod
    def check_targeted_locales(cls, v: Optional[dict[str, bool]]) -> Optional[dict[str, bool]]:
        if v is None:
            return v
        return {validate_locale(locale): required for locale, required in v.items()}


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    repository_url: Optional[str] = None
    base_rfc5646_locale: str
    targeted_rfc5646_locales: dict[str, bool]
    required_rfc5646_locales: list[str]
    skip_imports: list[str]
    key_exclusions: list[str]
    created_at: datetime


# ============== Revision Schemas ==============


class RevisionCreateRequest(BaseModel):
    """Request to track a commit."""

    sha: str = Field(..., min_length=1, max_length=64, description="Commit sha or ref to resolve")
    requested_by_email: Optional[str] = Field(
        None, max_length=256, description="Notified when the import has errors"
    )
    import_now: bool = Field(True, description="Queue the import right away")


class RevisionResponse(BaseModel):
    """Revision with its import and readiness state."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    sha: str
    message: Optional[str] = None
    author: Optional[str] = None
    author_email: Optional[str] = None
    requested_by_email: Optional[str] = None
    committed_at: Optional[datetime] = None
    import_state: Literal["not_imported", "loading", "loaded"]
    loading: bool
    ready: bool
    import_errors: list[list[str]] = []
    git_url: Optional[str] = None
    key_count: Optional[int] = None
    created_at: datetime
    loaded_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


class RevisionListResponse(BaseModel):
    """Paginated list of revisions."""

    revisions: list[RevisionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ImportQueuedResponse(BaseModel):
    revision_id: str
    task_id: Optional[str] = None
    status: str = "queued"


class ImportReportResponse(BaseModel):
    """Outcome of a synchronous import."""

    revision_id: str
    sha: str
    dispatched: int
    succeeded: int
    failed: int
    skipped: int
    blobs: int
    keys: int
    detached_keys: int
    pruned_keys: int
    ready: bool
    duration_ms: int


# ============== Key & Translation Schemas ==============


class TranslationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    key_id: str
    source_rfc5646_locale: str
    rfc5646_locale: str
    source_copy: Optional[str] = None
    copy_: Optional[str] = Field(None, alias="copy")  # `copy` would shadow BaseModel.copy
    notes: Optional[str] = None
    translated: bool
    updated_at: Optional[datetime] = None


class TranslationUpdateRequest(BaseModel):
    """Set or clear a translation's copy. ``copy: null`` marks it untranslated."""

    model_config = ConfigDict(populate_by_name=True)

    copy_: Optional[str] = Field(None, alias="copy")
    notes: Optional[str] = None


class TranslationUpdateResponse(BaseModel):
    translation: TranslationResponse
    key_ready: bool
    revisions: list[RevisionResponse]


class KeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    original_key: str
    source_copy: str
    context: Optional[str] = None
    importer: Optional[str] = None
    source: Optional[str] = None
    ready: bool


# ============== Health & Misc Schemas ==============


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    redis: str


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


class ParserInfo(BaseModel):
    """A bundled parser."""

    ident: str
    description: str
