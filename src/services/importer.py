"""Revision import: fan extraction out over (blob, parser) pairs, then persist."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.db.models import Blob, Key, Project, Revision, utcnow
from src.exceptions import ExtractionError
from src.parsers.base import Parser, TranslatableUnit
from src.parsers.registry import ParserRegistry, default_registry
from src.services import events  # noqa: F401  (registers revision lifecycle listeners)
from src.services.content_store import ensure_blob, mark_parsed, replace_revision_blobs
from src.services.key_graph import (
    KeyFilter,
    ensure_translations,
    parse_exclusion_file,
    prune_orphan_keys,
    replace_revision_keys,
    revision_keys_from_sources,
    upsert_key,
)
from src.services.notifications import (
    Notifier,
    build_import_error_payload,
    enqueue_import_error_notification,
)
from src.services.readiness import recalculate_key_ready, recalculate_revision_ready
from src.services.repository import RepositoryAccessor, TreeEntry, find_commit, open_repository

settings = get_settings()
logger = logging.getLogger(__name__)


class LazyContent:
    """File content fetched on first use and shared by every parser of the blob."""

    def __init__(self, fetch: Callable[[], bytes]):
        self._fetch = fetch
        self._lock = asyncio.Lock()
        self._content: Optional[bytes] = None
        self._error: Optional[Exception] = None
        self.fetch_count = 0

    async def read(self) -> bytes:
        """Fetch on first call; later callers get the same content or the same error."""
        async with self._lock:
            if self._content is None and self._error is None:
                self.fetch_count += 1
                try:
                    self._content = await asyncio.to_thread(self._fetch)
                except Exception as e:
                    self._error = e
        if self._error is not None:
            raise self._error
        return self._content


@dataclass
class ExtractionJob:
    blob: Blob
    path: str
    parser: Parser
    content: LazyContent


@dataclass
class ExtractionOutcome:
    job: ExtractionJob
    units: list[TranslatableUnit] = field(default_factory=list)
    error: Optional[ExtractionError] = None
    skipped: bool = False


@dataclass
class ImportReport:
    """Summary of one import run."""

    revision_id: str
    sha: str
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    blobs: int = 0
    keys: int = 0
    detached_keys: int = 0
    pruned_keys: int = 0
    ready: bool = False
    duration_ms: int = 0


class ImportService:
    """Imports the strings of a revision and recomputes its readiness."""

    def __init__(
        self,
        registry: ParserRegistry = default_registry,
        repository_factory: Callable[[Project], RepositoryAccessor] = open_repository,
        notifier: Notifier = enqueue_import_error_notification,
        concurrency: Optional[int] = None,
        exclusion_file_path: Optional[str] = None,
    ):
        self.registry = registry
        self.repository_factory = repository_factory
        self.notifier = notifier
        self.concurrency = concurrency or settings.import_concurrency
        self.exclusion_file_path = exclusion_file_path or settings.exclusion_file_path

    async def import_strings(
        self,
        db: AsyncSession,
        revision: Revision,
        repository: Optional[RepositoryAccessor] = None,
    ) -> ImportReport:
        """
        Run a full import of the revision.

        The caller guarantees at most one import per revision at a time.
        Extraction failures are recorded in ``import_errors``; repository
        errors abort the import and are re-raised with ``loading`` reset.
        """
        started = time.monotonic()
        report = ImportReport(revision_id=revision.id, sha=revision.sha)
        project = await db.get(Project, revision.project_id)

        revision.import_errors = []
        revision.loading = True
        await db.commit()
        logger.info(f"Importing revision {revision.sha} of project {project.name}")

        try:
            repository = repository or self.repository_factory(project)
            handle = await asyncio.to_thread(find_commit, repository, revision.sha)
            entries = await asyncio.to_thread(repository.list_tree, handle)
        except Exception as e:
            logger.error(f"Import of revision {revision.sha} aborted: {e}")
            revision.loading = False
            await db.commit()
            raise

        try:
            await self._run(db, project, revision, entries, report)
        except Exception:
            logger.exception(f"Import of revision {revision.sha} failed")
            await self._abort(db, revision)
            raise

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Imported revision {revision.sha}: {report.succeeded}/{report.dispatched} tasks ok, "
            f"{report.failed} failed, {report.skipped} skipped, {report.keys} keys "
            f"in {report.duration_ms}ms"
        )

        if revision.import_errors:
            try:
                self.notifier(build_import_error_payload(revision))
            except Exception as e:
                logger.error(f"Failed to queue import error notification for {revision.sha}: {e}")

        return report

    async def _run(
        self,
        db: AsyncSession,
        project: Project,
        revision: Revision,
        entries: list[TreeEntry],
        report: ImportReport,
    ):
        key_filter = KeyFilter.for_project(project, await self._exclusions(revision, entries))
        jobs = await self._plan(db, project, entries)
        report.dispatched = len(jobs)

        # Completion barrier: every task finishes (or records its failure) first
        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(*(self._extract(job, semaphore) for job in jobs))

        # Single writer from here on
        keys: dict[str, Key] = {}
        imported_blob_ids: set[str] = set()
        failed_blob_ids: set[str] = set()

        for outcome in outcomes:
            job = outcome.job
            if outcome.error is not None:
                report.failed += 1
                failed_blob_ids.add(job.blob.id)
                revision.add_import_error(outcome.error.cause, f"in {job.path}")
                continue
            if outcome.skipped:
                report.skipped += 1
                continue

            report.succeeded += 1
            imported_blob_ids.add(job.blob.id)
            for unit in outcome.units:
                if key_filter.skip_key(unit.exclusion_key):
                    continue
                key = await upsert_key(db, project, unit, importer=job.parser.ident, source=job.path)
                await ensure_translations(db, project, key, unit.locale)
                keys[key.id] = key

        if failed_blob_ids:
            # A file that failed this time keeps the keys it contributed before
            failed_paths = {o.job.path for o in outcomes if o.error is not None}
            for key in await revision_keys_from_sources(db, revision.id, failed_paths):
                keys.setdefault(key.id, key)
            imported_blob_ids |= failed_blob_ids

        detached = await replace_revision_keys(db, revision, set(keys))
        await replace_revision_blobs(db, revision, imported_blob_ids)
        await mark_parsed(db, {job.blob.id for job in jobs} - failed_blob_ids)

        required_locales = project.required_rfc5646_locales
        for key in keys.values():
            await recalculate_key_ready(db, key, required_locales)

        revision.loading = False
        revision.loaded_at = utcnow()
        report.ready = await recalculate_revision_ready(db, revision)
        if not failed_blob_ids:
            report.pruned_keys = await prune_orphan_keys(db, detached)
        await db.commit()

        report.blobs = len(imported_blob_ids)
        report.keys = len(keys)
        report.detached_keys = len(detached)

    async def _plan(
        self, db: AsyncSession, project: Project, entries: list[TreeEntry]
    ) -> list[ExtractionJob]:
        """One job per (blob, enabled parser claiming the blob's path)."""
        parsers = self.registry.enabled_for(project)
        jobs = []
        for entry in entries:
            blob = await ensure_blob(db, project, entry.path, entry.sha)
            claiming = [parser for parser in parsers if parser.claims(entry.path)]
            if not claiming:
                continue
            content = LazyContent(entry.fetch)
            jobs.extend(ExtractionJob(blob, entry.path, parser, content) for parser in claiming)
        await db.commit()
        return jobs

    async def _extract(self, job: ExtractionJob, semaphore: asyncio.Semaphore) -> ExtractionOutcome:
        async with semaphore:
            try:
                content = await job.content.read()
                if await asyncio.to_thread(job.parser.skip, job.path, content):
                    logger.debug(f"{job.parser.ident} skipped {job.path}")
                    return ExtractionOutcome(job, skipped=True)
                units = await asyncio.to_thread(job.parser.extract, job.path, content)
            except Exception as e:
                error = ExtractionError(job.parser.ident, job.path, e)
                logger.warning(str(error))
                return ExtractionOutcome(job, error=error)
        return ExtractionOutcome(job, units=units)

    async def _exclusions(self, revision: Revision, entries: list[TreeEntry]) -> list[str]:
        """Key exclusion patterns from the revision's own exclusion file."""
        entry = next((e for e in entries if e.path == self.exclusion_file_path), None)
        if entry is None:
            return []
        try:
            return parse_exclusion_file(await asyncio.to_thread(entry.fetch))
        except Exception as e:
            logger.warning(f"Unreadable exclusion file in {revision.sha}: {e}")
            revision.add_import_error(e, f"in {entry.path}")
            return []

    async def _abort(self, db: AsyncSession, revision: Revision):
        revision_id = revision.id
        await db.rollback()
        await db.execute(
            update(Revision)
            .where(Revision.id == revision_id)
            .values(loading=False)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(revision)

    async def skip_key(
        self,
        revision: Revision,
        project: Project,
        key: str,
        repository: Optional[RepositoryAccessor] = None,
    ) -> bool:
        """Whether the project or the revision's exclusion file excludes ``key``."""
        repository = repository or self.repository_factory(project)
        handle = await asyncio.to_thread(find_commit, repository, revision.sha)
        entries = await asyncio.to_thread(repository.list_tree, handle)
        entry = next((e for e in entries if e.path == self.exclusion_file_path), None)
        patterns = parse_exclusion_file(await asyncio.to_thread(entry.fetch)) if entry else []
        return KeyFilter.for_project(project, patterns).skip_key(key)


import_service = ImportService()


def get_import_service() -> ImportService:
    """FastAPI dependency; overridden in tests."""
    return import_service
