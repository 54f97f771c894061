"""Tests for import error notifications and their delivery."""

import json

import httpx
import pytest
import respx

from src import worker
from src.db.models import Revision
from src.services.notifications import (
    SUBJECT,
    build_import_error_payload,
    format_import_errors,
    recipients_for,
)
from tests.utils import SHA_A

WEBHOOK_URL = "https://hooks.example.com/imports"


def failed_revision(**kwargs) -> Revision:
    defaults = dict(
        id="rev-1",
        project_id="proj-1",
        sha=SHA_A,
        author_email="sam@example.com",
        requested_by_email="dev@example.com",
        import_errors=[["JSONDecodeError", "Expecting value (in web/en.json)"]],
    )
    defaults.update(kwargs)
    return Revision(**defaults)


def test_format_import_errors():
    errors = [["JSONDecodeError", "Expecting value (in en.json)"], ["ValueError", "bad (in x.yml)"]]
    assert format_import_errors(errors) == [
        "JSONDecodeError - Expecting value (in en.json)",
        "ValueError - bad (in x.yml)",
    ]


def test_recipients_requester_first_without_duplicates():
    assert recipients_for(failed_revision()) == ["dev@example.com", "sam@example.com"]
    assert recipients_for(failed_revision(requested_by_email="sam@example.com")) == ["sam@example.com"]
    assert recipients_for(failed_revision(requested_by_email=None, author_email=None)) == []


def test_payload():
    payload = build_import_error_payload(failed_revision())

    assert payload["subject"] == SUBJECT
    assert payload["sha"] == SHA_A
    assert payload["revision_id"] == "rev-1"
    assert payload["errors"] == ["JSONDecodeError - Expecting value (in web/en.json)"]
    assert payload["body"] == f"SHA: {SHA_A}\n\nJSONDecodeError - Expecting value (in web/en.json)"


class TestWebhookDelivery:
    @pytest.fixture(autouse=True)
    def webhook_url(self, monkeypatch):
        monkeypatch.setattr(worker.settings, "notification_webhook_url", WEBHOOK_URL)

    @respx.mock
    def test_delivers_payload(self):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))
        payload = build_import_error_payload(failed_revision())

        worker.send_import_error_notification(payload)

        assert route.called
        request = route.calls.last.request
        body = json.loads(request.content)
        assert body["event"] == "revision.import_failed"
        assert body["data"] == payload
        assert request.headers["X-Webhook-Event"] == "revision.import_failed"

    @respx.mock
    def test_server_error_is_retried(self):
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            worker.send_import_error_notification(build_import_error_payload(failed_revision()))

    @respx.mock
    def test_client_error_is_not_retried(self):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(404))

        worker.send_import_error_notification(build_import_error_payload(failed_revision()))

        assert route.call_count == 1


@respx.mock
def test_no_webhook_configured(monkeypatch):
    monkeypatch.setattr(worker.settings, "notification_webhook_url", None)
    route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

    worker.send_import_error_notification(build_import_error_payload(failed_revision()))

    assert not route.called
