from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingMailer:
    """Stand-in for an SMTP/API mailer: records outgoing mail in the log."""

    def __init__(self):
        self.sent: list[dict] = []

    def _send(self, *, to: str, subject: str, body: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "body": body})
        logger.info("mail to=%s subject=%r", to, subject)
        return True

    def send_welcome(self, *, email: str, name: str, temporary_password: str) -> bool:
        body = (
            f"Hi {name},\n"
            "Your account has been created by the administrator.\n"
            f"Your temporary password is: {temporary_password}\n"
            "Please login and change your password immediately.\n"
        )
        return self._send(to=email, subject="Your Smart Attendance account", body=body)

    def send_password_reset(self, *, email: str, new_password: str) -> bool:
        body = f"Your password has been reset to: {new_password}\n"
        return self._send(to=email, subject="Password reset", body=body)
