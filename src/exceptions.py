"""Domain errors raised by the import pipeline."""


class ImportServiceError(Exception):
    """Base class for service errors."""


class RevisionValidationError(ImportServiceError):
    """Revision failed validation before reaching the database."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field} {message}")
        self.field = field
        self.message = message


class DuplicateRevisionError(ImportServiceError):
    """The database rejected a revision whose sha already exists in the project."""

    def __init__(self, sha: str):
        super().__init__(f"Revision {sha} already exists in this project")
        self.sha = sha


class RepositoryNotConfiguredError(ImportServiceError):
    """The project has no git repository to import from."""

    def __init__(self, project_name: str | None = None):
        detail = f" {project_name}" if project_name else ""
        super().__init__(f"Project{detail} is not linked to a git repository")


class ObjectNotFoundError(ImportServiceError):
    """The revision could not be found, even after fetching the remote."""

    def __init__(self, sha: str):
        super().__init__(f"Commit not found in git repo: {sha}")
        self.sha = sha


class ExtractionError(ImportServiceError):
    """A parser failed on one file. Recorded on the revision, never fatal."""

    def __init__(self, parser: str, path: str, cause: Exception):
        super().__init__(f"{parser} failed on {path}: {cause}")
        self.parser = parser
        self.path = path
        self.cause = cause


class DuplicateProjectError(ImportServiceError):
    """A project with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(f"Project {name} already exists")
        self.name = name
