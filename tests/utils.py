"""Shared test helpers: an in-memory repository and sample commits."""

import hashlib
from datetime import datetime, timezone
from typing import Optional

from src.services.repository import RevisionHandle, TreeEntry
from src.services.revision_service import revision_service

SHA_A = "a" * 40
SHA_B = "b" * 40


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\x00" % len(content) + content).hexdigest()


class FakeRepository:
    """In-memory repository. Commits listed in ``remote_only`` appear after ``fetch_remote``."""

    def __init__(
        self,
        commits: Optional[dict[str, dict[str, bytes]]] = None,
        remote_only: Optional[set[str]] = None,
    ):
        self.commits = commits or {}
        self.remote_only = set(remote_only or ())
        self.messages: dict[str, str] = {}
        self.resolve_calls = 0
        self.fetch_calls = 0
        self.reads: dict[str, int] = {}
        self.failing_reads: set[str] = set()

    def add_commit(self, sha: str, files: dict[str, bytes], message: str = "Update strings"):
        self.commits[sha] = files
        self.messages[sha] = message

    def resolve(self, revision: str) -> Optional[RevisionHandle]:
        self.resolve_calls += 1
        if revision not in self.commits or revision in self.remote_only:
            return None
        return RevisionHandle(
            sha=revision,
            author="Sam Doe",
            author_email="sam@example.com",
            message=self.messages.get(revision, "Update strings"),
            committed_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )

    def fetch_remote(self) -> None:
        self.fetch_calls += 1
        self.remote_only.clear()

    def list_tree(self, handle: RevisionHandle) -> list[TreeEntry]:
        return [
            TreeEntry(path=path, sha=blob_sha(content), fetch=self._reader(path, content))
            for path, content in sorted(self.commits[handle.sha].items())
        ]

    def _reader(self, path: str, content: bytes):
        def read() -> bytes:
            self.reads[path] = self.reads.get(path, 0) + 1
            if path in self.failing_reads:
                raise OSError(f"git cat-file failed for {path}")
            return content

        return read

    def diff_paths(self, revision_a: str, revision_b: str) -> list[str]:
        a, b = self.commits[revision_a], self.commits[revision_b]
        return sorted(p for p in set(a) | set(b) if a.get(p) != b.get(p))


STRINGS_FILES = {
    "config/locales/en.yml": b"en:\n  greeting: Hello\n  nav:\n    home: Home\n",
    "config/locales/fr.yml": b"fr:\n  greeting: Bonjour\n",
    "web/locales/en.json": b'{"title": "Welcome"}',
    "ios/en.lproj/Localizable.strings": b'/* Button title */\n"save" = "Save";\n',
    "README.md": b"# Demo\n",
}


async def make_revision(db, project, repository: FakeRepository, sha: str = SHA_A, **kwargs):
    revision = await revision_service.create_revision(db, project, sha, repository=repository, **kwargs)
    await db.commit()
    return revision
