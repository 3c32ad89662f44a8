"""Fake email adapter: records sent emails for testing."""

import time
from uuid import uuid4

from notifications.channel.email_port import EmailPort


class EmailTransportError(Exception):
    """Raised by the fake adapter when configured to blow up instead of reporting failure."""


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.raise_errors = False
        self.latency = 0.0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        raise_errors: bool = False,
        latency: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing.

        With ``raise_errors`` a failing send raises instead of returning a
        "failed" status, like a transport that drops the connection.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_errors = raise_errors
        self.latency = latency

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
        to_name: str | None = None,
    ) -> dict:
        if self.latency:
            time.sleep(self.latency)

        if not self.should_succeed:
            if self.raise_errors:
                raise EmailTransportError(self.failure_reason)
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "to_name": to_name,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )

        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails and restore default behavior."""
        self.sent_emails.clear()
        self.configure()
