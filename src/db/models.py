"""Database models for the string import service."""

import hashlib
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from src.db.session import Base

MESSAGE_MAX_LENGTH = 256
TRUNCATION_MARKER = "..."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def sha256_hex(*parts: Optional[str]) -> str:
    """Stable fingerprint of a sequence of optional strings."""
    digest = hashlib.sha256()
    for part in parts:
        digest.update(b"\x01" if part is None else b"\x02" + part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


# Association tables. Rows go away with either side; the Key/Blob rows
# themselves are project-owned and survive a revision's deletion.
revisions_keys = Table(
    "revisions_keys",
    Base.metadata,
    Column(
        "revision_id",
        UUID(as_uuid=False),
        ForeignKey("revisions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "key_id",
        UUID(as_uuid=False),
        ForeignKey("keys.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)

revisions_blobs = Table(
    "revisions_blobs",
    Base.metadata,
    Column(
        "revision_id",
        UUID(as_uuid=False),
        ForeignKey("revisions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "blob_id",
        UUID(as_uuid=False),
        ForeignKey("blobs.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Project(Base):
    """A localized codebase tracked through its git repository."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(256), unique=True)
    repository_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    base_rfc5646_locale: Mapped[str] = mapped_column(String(20), default="en")
    # {"fr": True, "ja": False}: targeted locales, flagged when required
    targeted_rfc5646_locales: Mapped[dict] = mapped_column(JSON, default=dict)
    skip_imports: Mapped[list] = mapped_column(JSON, default=list)  # parser idents
    key_exclusions: Mapped[list] = mapped_column(JSON, default=list)  # glob patterns
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    revisions: Mapped[list["Revision"]] = relationship(
        "Revision", back_populates="project", passive_deletes=True
    )
    blobs: Mapped[list["Blob"]] = relationship("Blob", back_populates="project", passive_deletes=True)
    keys: Mapped[list["Key"]] = relationship("Key", back_populates="project", passive_deletes=True)

    @property
    def required_rfc5646_locales(self) -> list[str]:
        return sorted(
            locale for locale, required in (self.targeted_rfc5646_locales or {}).items() if required
        )

    @property
    def other_rfc5646_locales(self) -> list[str]:
        """Targeted locales other than the base locale."""
        return sorted(
            locale
            for locale in (self.targeted_rfc5646_locales or {})
            if locale != self.base_rfc5646_locale
        )


class Blob(Base):
    """One file's content at one path, as first seen in the project."""

    __tablename__ = "blobs"
    __table_args__ = (
        UniqueConstraint("project_id", "path", "sha", name="uq_blobs_project_path_sha"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    path: Mapped[str] = mapped_column(String(1024))
    sha: Mapped[str] = mapped_column(String(64))
    parsed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="blobs")

    def __repr__(self):
        return f"<Blob(path='{self.path}', sha='{self.sha[:8]}...')>"


class Revision(Base):
    """A source-control commit whose strings are tracked for readiness."""

    __tablename__ = "revisions"
    __table_args__ = (
        UniqueConstraint("project_id", "sha", name="uq_revisions_project_sha"),
        Index("ix_revisions_ready", "ready"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    sha: Mapped[str] = mapped_column(String(64))

    # Commit metadata
    message: Mapped[Optional[str]] = mapped_column(String(MESSAGE_MAX_LENGTH), nullable=True)
    author: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    author_email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    requested_by_email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    committed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Import / readiness state
    loading: Mapped[bool] = mapped_column(Boolean, default=False)
    ready: Mapped[bool] = mapped_column(Boolean, default=False)
    import_errors: Mapped[list] = mapped_column(JSON, default=list)  # [[kind, location], ...]

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    loaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="revisions")
    keys: Mapped[list["Key"]] = relationship(
        "Key", secondary=revisions_keys, passive_deletes=True
    )
    blobs: Mapped[list["Blob"]] = relationship(
        "Blob", secondary=revisions_blobs, passive_deletes=True
    )

    @validates("message")
    def truncate_message(self, key, value):
        if value is not None and len(value) > MESSAGE_MAX_LENGTH:
            cut = MESSAGE_MAX_LENGTH - len(TRUNCATION_MARKER)
            value = value[:cut] + TRUNCATION_MARKER
        return value

    def add_import_error(self, error: Exception, location: str):
        """Append an error entry; the list is replaced so the JSON column is marked dirty."""
        self.import_errors = [
            *(self.import_errors or []),
            [type(error).__name__, f"{error} ({location})"],
        ]

    @property
    def import_state(self) -> str:
        if self.loading:
            return "loading"
        if self.loaded_at is None:
            return "not_imported"
        return "loaded"


class Key(Base):
    """A translatable unit of text, unique per project."""

    __tablename__ = "keys"
    __table_args__ = (
        UniqueConstraint("project_id", "fingerprint", name="uq_keys_project_fingerprint"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    # sha256 of (key, source_copy, context)
    fingerprint: Mapped[str] = mapped_column(String(64))
    key: Mapped[str] = mapped_column(Text)
    original_key: Mapped[str] = mapped_column(Text)
    source_copy: Mapped[str] = mapped_column(Text)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    importer: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    source: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    other_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ready: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="keys")
    translations: Mapped[list["Translation"]] = relationship(
        "Translation", back_populates="key", cascade="all, delete-orphan", passive_deletes=True
    )

    @staticmethod
    def fingerprint_for(key: str, source_copy: str, context: Optional[str] = None) -> str:
        return sha256_hex(key, source_copy, context)


class Translation(Base):
    """One locale's rendering of a Key."""

    __tablename__ = "translations"
    __table_args__ = (
        UniqueConstraint("key_id", "rfc5646_locale", name="uq_translations_key_locale"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)
    key_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("keys.id", ondelete="CASCADE"), index=True
    )
    source_rfc5646_locale: Mapped[str] = mapped_column(String(20))
    rfc5646_locale: Mapped[str] = mapped_column(String(20))
    source_copy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    copy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # None = untranslated
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )

    # Relationships
    key: Mapped["Key"] = relationship("Key", back_populates="translations")

    @property
    def translated(self) -> bool:
        return self.copy is not None
