"""Script to import a revision in-process, without the worker."""

import argparse
import asyncio
import logging
import sys

sys.path.insert(0, ".")

from src.db.session import async_session_maker, engine, init_db
from src.exceptions import ImportServiceError
from src.services.importer import ImportService
from src.services.project_service import project_service
from src.services.revision_service import revision_service


def print_notification(payload: dict):
    print("\n" + payload["body"])


async def main(project_name: str, sha: str, requested_by: str | None) -> int:
    await init_db()
    importer = ImportService(notifier=print_notification)

    async with async_session_maker() as db:
        project = await project_service.get_project_by_name(db, project_name)
        if project is None:
            print(f"Project {project_name} not found")
            return 1

        revision = await revision_service.get_revision_by_sha(db, project.id, sha)
        if revision is None:
            revision = await revision_service.create_revision(
                db, project, sha, requested_by_email=requested_by
            )
            await db.commit()
            print(f"Created revision {revision.sha}")

        report = await importer.import_strings(db, revision)

    print("\n" + "=" * 60)
    print(f"Revision:  {report.sha}")
    print(f"Tasks:     {report.succeeded}/{report.dispatched} ok, "
          f"{report.failed} failed, {report.skipped} skipped")
    print(f"Keys:      {report.keys} ({report.detached_keys} detached, {report.pruned_keys} pruned)")
    print(f"Ready:     {report.ready}")
    print(f"Duration:  {report.duration_ms}ms")
    print("=" * 60)
    return 0


async def run(args) -> int:
    try:
        return await main(args.project, args.sha, args.requested_by)
    except ImportServiceError as e:
        print(f"Import failed: {e}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Import the strings of a commit")
    parser.add_argument("project", help="Project name")
    parser.add_argument("sha", help="Commit sha or ref")
    parser.add_argument("--requested-by", help="Email notified about import errors")
    sys.exit(asyncio.run(run(parser.parse_args())))
