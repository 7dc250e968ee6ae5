"""
Outbound messaging gateway: Slack-style chat messages and advisor email.

All outbound notification traffic goes through ``Notifier``. Services never
call ``requests`` or ``smtplib`` directly; they go through
``NotificationService`` which swallows and logs gateway failures so that a
committed write is never undone by a messaging outage.

Log-only mode:
  - ``SLACK_API_URL`` unset  → chat messages are logged, not sent
  - ``MAIL_SERVER`` unset    → advisor mail is logged, not sent

Testability: pass a mock ``session`` to Notifier() instead of letting it
create a real requests.Session, and patch ``smtplib.SMTP`` for mail.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

import requests
from flask import current_app

from projecthub.core.exceptions import DownstreamError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10


class Notifier:
    """Chat + mail gateway.

    Usage:
        from projecthub.integrations.notifier import notifier
        notifier.send_message("C024BE91L", "Risk resolved on 1.2.0")
        notifier.send_mail_to_advisor("SABO 1234", "Please approve ...")
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Chat ─────────────────────────────────────────────────────────────────

    def send_message(self, channel: str, text: str) -> dict | None:
        """Post ``text`` to a channel or user key.

        Returns:
            The parsed response body, or None in log-only mode.

        Raises:
            DownstreamError: on network failure, non-2xx, or ``ok: false``.
        """
        cfg = current_app.config
        api_url = cfg.get("SLACK_API_URL")
        if not api_url or not channel:
            logger.info("Chat message (log-only): channel=%s text=%r", channel, text[:200])
            return None

        headers = {"Content-Type": "application/json; charset=utf-8"}
        token = cfg.get("SLACK_BOT_TOKEN")
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{api_url.rstrip('/')}/chat.postMessage"
        try:
            resp = self.session.post(
                url,
                json={"channel": channel, "text": text, "unfurl_links": False},
                headers=headers,
                timeout=_DEFAULT_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise DownstreamError("Slack", str(exc)[:500]) from exc

        if not resp.ok:
            raise DownstreamError("Slack", f"HTTP {resp.status_code}: {resp.text[:500]}")
        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}
        if body.get("ok") is False:
            raise DownstreamError("Slack", body.get("error", "unknown error"))
        logger.info("Chat message sent: channel=%s", channel)
        return body

    # ── Mail ─────────────────────────────────────────────────────────────────

    def send_mail_to_advisor(self, subject: str, text: str) -> None:
        """Mail the finance advisor configured by ADVISOR_EMAIL.

        Raises:
            DownstreamError: if the SMTP exchange fails.
        """
        cfg = current_app.config
        to_email = cfg.get("ADVISOR_EMAIL")
        server = cfg.get("MAIL_SERVER")
        if not server or not to_email:
            logger.info("Advisor email (log-only): to=%s subject=%r", to_email, subject)
            return

        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")
        msg = MIMEText(text, "plain")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to_email

        try:
            with smtplib.SMTP(server, cfg.get("MAIL_PORT", 587), timeout=30) as smtp:
                if cfg.get("MAIL_USE_TLS", True):
                    smtp.starttls()
                username = cfg.get("MAIL_USERNAME")
                password = cfg.get("MAIL_PASSWORD")
                if username and password:
                    smtp.login(username, password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DownstreamError("Email", str(exc)[:500]) from exc
        logger.info("Advisor email sent: to=%s subject=%r", to_email, subject)


notifier = Notifier()
