"""
ProjectHub
Notification Service.

Fire-and-forget chat notifications sent after a mutation has committed.
Gateway failures are logged and swallowed; they never roll back or fail the
request that triggered them. ``NOTIFICATIONS_ENABLED=false`` turns every
method into a no-op.
"""

import logging

from flask import current_app

from projecthub.core.exceptions import DownstreamError
from projecthub.integrations.notifier import notifier

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless service class for outbound chat notifications."""

    @staticmethod
    def send(channel, text):
        """Send one message. Returns True if the gateway accepted it."""
        if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
            logger.debug("Notifications disabled; dropping message to %s", channel)
            return False
        if not channel:
            return False
        try:
            notifier.send_message(channel, text)
            return True
        except DownstreamError as exc:
            logger.warning("Notification to %s failed: %s", channel, exc)
            return False

    # ── Change requests ───────────────────────────────────────────────────

    @staticmethod
    def notify_change_request_submitted(cr):
        """Tell the lead channel that a new CR needs review."""
        channel = current_app.config.get("LEAD_CHANNEL_SLACK_ID")
        text = (
            f"New {cr.type.replace('_', ' ')} CR #{cr.id} on {cr.wbs_element.wbs_number} "
            f"by {cr.submitter.full_name} is waiting for review."
        )
        return NotificationService.send(channel, text)

    @staticmethod
    def notify_change_request_reviewed(cr):
        """Tell the submitter how their CR was reviewed."""
        verdict = "accepted" if cr.accepted else "denied"
        text = f"Your CR #{cr.id} on {cr.wbs_element.wbs_number} was {verdict} by {cr.reviewer.full_name}."
        return NotificationService.send(cr.submitter.slack_id, text)

    # ── Work packages / finance ───────────────────────────────────────────

    @staticmethod
    def notify_work_package_completed(work_package):
        channel = current_app.config.get("LEAD_CHANNEL_SLACK_ID")
        wbs = work_package.wbs_element
        text = f"Work package {wbs.wbs_number} {wbs.name} is complete."
        return NotificationService.send(channel, text)

    @staticmethod
    def notify_reimbursement_delivered(request):
        text = f"Your reimbursement request #{request.identifier} has been delivered."
        return NotificationService.send(request.recipient.slack_id, text)
