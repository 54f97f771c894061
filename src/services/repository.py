"""Git repository access through the git CLI."""

import hashlib
import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol

from src.config import get_settings
from src.exceptions import ObjectNotFoundError, RepositoryNotConfiguredError

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevisionHandle:
    """A resolved commit."""

    sha: str
    author: Optional[str] = None
    author_email: Optional[str] = None
    message: Optional[str] = None
    committed_at: Optional[datetime] = None


@dataclass(frozen=True)
class TreeEntry:
    """A file in a commit's tree. ``fetch`` reads its content on demand."""

    path: str
    sha: str
    fetch: Callable[[], bytes]


class RepositoryAccessor(Protocol):
    def resolve(self, revision: str) -> Optional[RevisionHandle]: ...

    def fetch_remote(self) -> None: ...

    def list_tree(self, handle: RevisionHandle) -> list[TreeEntry]: ...

    def diff_paths(self, revision_a: str, revision_b: str) -> list[str]: ...


class GitCommandError(RuntimeError):
    """A git subprocess exited non-zero."""


class GitRepository:
    """
    Bare mirror of a remote repository kept under the cache directory.

    All calls are blocking; async callers wrap them in ``asyncio.to_thread``.
    """

    def __init__(self, url: str, cache_dir: Optional[str] = None, timeout: Optional[int] = None):
        self.url = url
        self.timeout = timeout or settings.git_timeout_seconds
        name = hashlib.sha1(url.encode("utf-8")).hexdigest()
        self.path = Path(cache_dir or settings.repository_cache_dir) / f"{name}.git"

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        result = subprocess.run(
            ["git", "--git-dir", str(self.path), *args],
            capture_output=True,
            timeout=self.timeout,
        )
        if check and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GitCommandError(f"git {args[0]} failed: {stderr}")
        return result

    def ensure_mirror(self):
        """Clone the remote on first use."""
        if self.path.exists():
            return
        logger.info(f"Cloning {self.url} into {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        result = subprocess.run(
            ["git", "clone", "--mirror", self.url, str(self.path)],
            capture_output=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GitCommandError(f"git clone failed: {stderr}")

    def fetch_remote(self) -> None:
        self.ensure_mirror()
        logger.info(f"Fetching {self.url}")
        self._git("fetch", "--prune", "origin")

    def resolve(self, revision: str) -> Optional[RevisionHandle]:
        """Look up a commit locally. Returns None when the object is missing."""
        self.ensure_mirror()
        result = self._git(
            "show", "-s", "--format=%H%x00%an%x00%ae%x00%cI%x00%B", f"{revision}^{{commit}}", "--",
            check=False,
        )
        if result.returncode != 0:
            return None

        sha, author, email, committed, message = (
            result.stdout.decode("utf-8", "replace").split("\x00", 4)
        )
        return RevisionHandle(
            sha=sha,
            author=author or None,
            author_email=email or None,
            message=message.strip() or None,
            committed_at=datetime.fromisoformat(committed) if committed else None,
        )

    def list_tree(self, handle: RevisionHandle) -> list[TreeEntry]:
        output = self._git("ls-tree", "-r", "-z", handle.sha).stdout.decode("utf-8")
        entries = []
        for record in filter(None, output.split("\x00")):
            meta, path = record.split("\t", 1)
            _mode, kind, sha = meta.split()
            if kind != "blob":
                continue
            entries.append(TreeEntry(path=path, sha=sha, fetch=self._blob_reader(sha)))
        return entries

    def read_blob(self, sha: str) -> bytes:
        return self._git("cat-file", "blob", sha).stdout

    def _blob_reader(self, sha: str) -> Callable[[], bytes]:
        return lambda: self.read_blob(sha)

    def diff_paths(self, revision_a: str, revision_b: str) -> list[str]:
        output = self._git("diff", "--name-only", "-z", revision_a, revision_b).stdout
        return [path for path in output.decode("utf-8").split("\x00") if path]


def find_commit(repository: RepositoryAccessor, revision: str) -> RevisionHandle:
    """
    Resolve a revision, fetching the remote once if it is not known locally.

    A second miss is final.
    """
    handle = repository.resolve(revision)
    if handle is not None:
        return handle

    logger.info(f"Revision {revision} not found locally; fetching remote")
    repository.fetch_remote()
    handle = repository.resolve(revision)
    if handle is None:
        raise ObjectNotFoundError(revision)
    return handle


def open_repository(project) -> GitRepository:
    """Repository accessor for a project."""
    if not project.repository_url:
        raise RepositoryNotConfiguredError(project.name)
    return GitRepository(project.repository_url)


def get_repository_factory() -> Callable[..., RepositoryAccessor]:
    """FastAPI dependency; overridden in tests."""
    return open_repository


_SSH_REMOTE = re.compile(r"^(?:ssh://)?git@(?P<host>[^:/]+)[:/](?P<path>.+?)(?:\.git)?/?$")
_HTTP_REMOTE = re.compile(r"^https?://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<path>.+?)(?:\.git)?/?$")


def commit_web_url(repository_url: Optional[str], sha: str) -> Optional[str]:
    """
    Browser URL for a commit.

    GitHub and GitHub Enterprise remotes map to ``https://<host>/<path>/commit/<sha>``;
    Stash remotes (``/scm/<project>/<repo>``) to the Stash commit page.
    """
    if not repository_url:
        return None

    match = _SSH_REMOTE.match(repository_url) or _HTTP_REMOTE.match(repository_url)
    if match is None:
        return None
    host, path = match.group("host"), match.group("path")

    if path.startswith("scm/"):
        parts = path.split("/")
        if len(parts) == 3:
            _, project_key, repo = parts
            return f"https://{host}/projects/{project_key.upper()}/repos/{repo}/commits/{sha}"
    return f"https://{host}/{path}/commit/{sha}"
