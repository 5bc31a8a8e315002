"""
Mail composition and hand-off.

Builds a multipart message with an HTML body and a plain-text alternative.
The message is sent through SMTP when a host is configured, otherwise it is
saved as an .eml draft for the operator to open in a mail client.
"""
import logging
import re
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from .config import SmtpSettings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]+>")


def html_to_text(html: str) -> str:
    """Crude plain-text alternative for clients that do not render HTML."""
    text = re.sub(r"(?is)<style.*?</style>", "", html)
    text = re.sub(r"(?i)<br\s*/?>|</p>|</tr>", "\n", text)
    text = re.sub(r"(?i)</t[dh]>", "\t", text)
    text = _TAG_PATTERN.sub("", text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def compose_message(recipient: str, subject: str, html_body: str, sender: Optional[str] = None) -> EmailMessage:
    """Build the message; nothing is sent."""
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["To"] = recipient
    if sender:
        msg["From"] = sender
    msg.set_content(html_to_text(html_body))
    msg.add_alternative(html_body, subtype="html")
    return msg


class Mailer:
    """
    Hands a composed report to SMTP or to the outbox directory.

    Args:
        smtp: SMTP settings; when disabled, messages become drafts
        outbox: Directory for .eml drafts
    """

    def __init__(self, smtp: SmtpSettings, outbox: str = "outbox"):
        self.smtp = smtp
        self.outbox = Path(outbox)

    def deliver(self, recipient: str, subject: str, html_body: str) -> Optional[Path]:
        """
        Compose and hand off a message.

        Returns:
            Path of the saved draft, or None when the message went to SMTP

        Raises:
            ConfigurationError: If SMTP is enabled without a sender
            smtplib.SMTPException, OSError: If the hand-off fails
        """
        msg = compose_message(recipient, subject, html_body, sender=self.smtp.sender)

        if self.smtp.enabled:
            if not self.smtp.sender:
                raise ConfigurationError("SMTP delivery needs a sender address (SMTP_SENDER)")
            self._send(msg, recipient)
            return None
        return self._save_draft(msg)

    def _send(self, msg: EmailMessage, recipient: str) -> None:
        with smtplib.SMTP(self.smtp.host, self.smtp.port) as server:
            if self.smtp.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.smtp.username and self.smtp.password:
                server.login(self.smtp.username, self.smtp.password)
            server.send_message(msg)
        logger.info(f"Report sent to {recipient} via {self.smtp.host}")

    def _save_draft(self, msg: EmailMessage) -> Path:
        # Outlook opens messages flagged unsent as editable drafts
        msg["X-Unsent"] = "1"
        self.outbox.mkdir(parents=True, exist_ok=True)
        stem = f"shift_report_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
        payload = bytes(msg)
        draft = self.outbox / f"{stem}.eml"
        suffix = 1
        while True:
            try:
                with open(draft, "xb") as f:
                    f.write(payload)
                break
            except FileExistsError:
                draft = self.outbox / f"{stem}_{suffix}.eml"
                suffix += 1
        logger.info(f"Draft saved to {draft}")
        return draft
