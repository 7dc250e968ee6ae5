"""
ProjectHub
Tests — outbound gateways and the fire-and-forget notification layer.

Test strategy
-------------
HTTP is mocked by passing a MagicMock session to the gateway constructors;
SMTP is mocked by patching ``smtplib.SMTP`` in the notifier module. App
config is overridden per test and restored afterwards.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from projecthub.core.exceptions import DownstreamError
from projecthub.integrations.document_store import DocumentStore
from projecthub.integrations.notifier import Notifier
from projecthub.services.notification import NotificationService


@pytest.fixture()
def config(app):
    """Temporarily override app config values."""
    saved = {}

    def _set(**values):
        for key, value in values.items():
            saved.setdefault(key, app.config.get(key))
            app.config[key] = value

    yield _set
    app.config.update(saved)


def _response(status=200, body=None, content=b"{}", headers=None):
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.text = str(body)
    resp.content = content
    resp.json.return_value = body if body is not None else {}
    resp.headers = headers or {}
    return resp


class TestNotifier:
    def test_log_only_without_url(self, config):
        config(SLACK_API_URL=None)
        session = MagicMock()
        assert Notifier(session=session).send_message("C1", "hello") is None
        session.post.assert_not_called()

    def test_posts_with_bearer_token(self, config):
        config(SLACK_API_URL="https://chat.example/api/", SLACK_BOT_TOKEN="xoxb-1")
        session = MagicMock()
        session.post.return_value = _response(body={"ok": True})
        Notifier(session=session).send_message("C1", "hello")
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "https://chat.example/api/chat.postMessage"
        assert kwargs["headers"]["Authorization"] == "Bearer xoxb-1"
        assert kwargs["json"]["channel"] == "C1"

    def test_ok_false_raises(self, config):
        config(SLACK_API_URL="https://chat.example/api")
        session = MagicMock()
        session.post.return_value = _response(body={"ok": False, "error": "channel_not_found"})
        with pytest.raises(DownstreamError, match="channel_not_found"):
            Notifier(session=session).send_message("C1", "hello")

    def test_network_error_raises(self, config):
        config(SLACK_API_URL="https://chat.example/api")
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(DownstreamError, match="Slack"):
            Notifier(session=session).send_message("C1", "hello")

    def test_advisor_mail_over_smtp(self, config):
        config(MAIL_SERVER="smtp.example", ADVISOR_EMAIL="advisor@example.edu", MAIL_USE_TLS=True,
               MAIL_USERNAME="bot", MAIL_PASSWORD="pw")
        with patch("projecthub.integrations.notifier.smtplib.SMTP") as smtp_cls:
            Notifier().send_mail_to_advisor("SABO list", "1, 2")
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "pw")
        sent = smtp.send_message.call_args.args[0]
        assert sent["To"] == "advisor@example.edu"
        assert sent["Subject"] == "SABO list"

    def test_smtp_failure_raises(self, config):
        config(MAIL_SERVER="smtp.example", ADVISOR_EMAIL="advisor@example.edu")
        with patch("projecthub.integrations.notifier.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            with pytest.raises(DownstreamError, match="Email"):
                Notifier().send_mail_to_advisor("SABO list", "1")


class TestDocumentStore:
    def test_upload_returns_id(self, config):
        config(DOCUMENT_STORE_URL="https://files.example", DOCUMENT_STORE_TOKEN="t")
        session = MagicMock()
        session.post.return_value = _response(body={"id": "abc", "name": "r.png"})
        assert DocumentStore(session=session).upload("r.png", b"data", "image/png") == {"id": "abc", "name": "r.png"}
        assert session.post.call_args.args[0] == "https://files.example/files"

    def test_upload_without_id_raises(self, config):
        config(DOCUMENT_STORE_URL="https://files.example")
        session = MagicMock()
        session.post.return_value = _response(body={})
        with pytest.raises(DownstreamError, match="missing file id"):
            DocumentStore(session=session).upload("r.png", b"data", "image/png")

    def test_download(self, config):
        config(DOCUMENT_STORE_URL="https://files.example")
        session = MagicMock()
        session.get.return_value = _response(content=b"img", headers={"Content-Type": "image/jpeg"})
        assert DocumentStore(session=session).download("abc") == (b"img", "image/jpeg")

    def test_http_error_raises(self, config):
        config(DOCUMENT_STORE_URL="https://files.example")
        session = MagicMock()
        session.get.return_value = _response(status=500)
        with pytest.raises(DownstreamError, match="HTTP 500"):
            DocumentStore(session=session).download("abc")


class TestNotificationService:
    def test_disabled_is_a_noop(self, config):
        config(NOTIFICATIONS_ENABLED=False)
        with patch("projecthub.services.notification.notifier") as gateway:
            assert NotificationService.send("C1", "hi") is False
        gateway.send_message.assert_not_called()

    def test_gateway_failure_is_swallowed(self, config):
        config(NOTIFICATIONS_ENABLED=True)
        with patch("projecthub.services.notification.notifier") as gateway:
            gateway.send_message.side_effect = DownstreamError("Slack", "down")
            assert NotificationService.send("C1", "hi") is False

    def test_review_notifies_submitter(self, config, make_project, make_change_request, make_user, leader):
        from projecthub.services import change_request_service

        config(NOTIFICATIONS_ENABLED=True)
        submitter = make_user(slack_id="U123")
        cr = make_change_request(submitter, make_project(1, 1).wbs_element)
        with patch("projecthub.services.notification.notifier") as gateway:
            gateway.send_message.side_effect = DownstreamError("Slack", "down")
            result = change_request_service.review_change_request(leader, cr.id, False)
        assert result["status"] == "denied"
        gateway.send_message.assert_called_once()
        assert gateway.send_message.call_args.args[0] == "U123"
