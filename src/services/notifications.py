"""Import error notifications."""

from typing import Callable

from src.db.models import Revision

Notifier = Callable[[dict], None]

SUBJECT = "Error(s) occurred during the import"


def format_import_errors(import_errors: list) -> list[str]:
    return [f"{kind} - {location}" for kind, location in import_errors]


def recipients_for(revision: Revision) -> list[str]:
    """Requester first, then commit author; blanks and duplicates dropped."""
    emails = []
    for email in (revision.requested_by_email, revision.author_email):
        if email and email not in emails:
            emails.append(email)
    return emails


def build_import_error_payload(revision: Revision) -> dict:
    errors = format_import_errors(revision.import_errors or [])
    return {
        "event": "revision.import_failed",
        "subject": SUBJECT,
        "revision_id": revision.id,
        "project_id": revision.project_id,
        "sha": revision.sha,
        "recipients": recipients_for(revision),
        "errors": errors,
        "body": "\n".join([f"SHA: {revision.sha}", "", *errors]),
    }


def enqueue_import_error_notification(payload: dict):
    """Default notifier: hand the payload to the worker."""
    from src.worker import send_import_error_notification

    send_import_error_notification.apply_async(args=[payload])
