"""
Unit tests for mail composition and hand-off.
"""
import email
from datetime import datetime
from email import policy
from unittest.mock import patch

import pytest

from shift_report.config import SmtpSettings
from shift_report.errors import ConfigurationError
from shift_report.mailer import Mailer, compose_message, html_to_text


HTML = (
    "<html><head></head><body>"
    "<p>Hello team,</p>"
    "<style>td { color: red; }</style>"
    "<table><tr><th>ID</th><th>Title</th></tr>"
    "<tr><td>42</td><td>Fix leak</td></tr></table>"
    "<p>Thanks,<br>Shift Automation</p>"
    "</body></html>"
)


class TestHtmlToText:
    """Test the plain-text alternative"""

    def test_tags_and_styles_removed(self):
        text = html_to_text(HTML)
        assert "<" not in text
        assert "color: red" not in text

    def test_rows_on_separate_lines(self):
        lines = html_to_text(HTML).splitlines()
        assert lines[0] == "Hello team,"
        assert "42\tFix leak" in lines
        assert lines[-1] == "Shift Automation"


class TestComposeMessage:
    """Test compose_message"""

    def test_headers(self):
        msg = compose_message("ops@example.com", "Night shift report", HTML, sender="bot@example.com")
        assert msg["To"] == "ops@example.com"
        assert msg["Subject"] == "Night shift report"
        assert msg["From"] == "bot@example.com"

    def test_no_sender_header_when_unset(self):
        msg = compose_message("ops@example.com", "S", HTML)
        assert msg["From"] is None

    def test_html_and_text_parts(self):
        msg = compose_message("ops@example.com", "S", HTML)

        assert msg.get_content_type() == "multipart/alternative"
        assert "<table>" in msg.get_body(preferencelist=("html",)).get_content()
        assert "Fix leak" in msg.get_body(preferencelist=("plain",)).get_content()


class TestDrafts:
    """Test the outbox hand-off"""

    def test_draft_written(self, tmp_path):
        mailer = Mailer(SmtpSettings(), outbox=str(tmp_path / "outbox"))

        draft = mailer.deliver("ops@example.com", "Morning shift report", HTML)

        assert draft.exists()
        assert draft.parent == tmp_path / "outbox"
        assert draft.name.startswith("shift_report_")
        assert draft.suffix == ".eml"

        parsed = email.message_from_bytes(draft.read_bytes(), policy=policy.default)
        assert parsed["X-Unsent"] == "1"
        assert parsed["To"] == "ops@example.com"
        assert parsed["Subject"] == "Morning shift report"

    def test_drafts_in_same_second_kept_apart(self, tmp_path):
        mailer = Mailer(SmtpSettings(), outbox=str(tmp_path))
        frozen = datetime(2024, 5, 10, 3, 0, 0, 123456)

        with patch("shift_report.mailer.datetime") as mock_datetime:
            mock_datetime.now.return_value = frozen
            first = mailer.deliver("ops@example.com", "Night shift report", HTML)
            second = mailer.deliver("ops@example.com", "Night shift report", HTML)

        assert first != second
        assert first.name == "shift_report_20240510_030000_123456.eml"
        assert second.name == "shift_report_20240510_030000_123456_1.eml"
        assert sorted(p.name for p in tmp_path.iterdir()) == [first.name, second.name]

    def test_smtp_not_touched(self, tmp_path):
        with patch("shift_report.mailer.smtplib.SMTP") as smtp_cls:
            Mailer(SmtpSettings(), outbox=str(tmp_path)).deliver("ops@example.com", "S", HTML)
        smtp_cls.assert_not_called()


class TestSmtp:
    """Test the SMTP hand-off"""

    @pytest.fixture
    def smtp_cls(self):
        with patch("shift_report.mailer.smtplib.SMTP") as smtp_cls:
            yield smtp_cls

    def test_send_with_tls_and_login(self, smtp_cls, tmp_path):
        settings = SmtpSettings(
            host="smtp.example.com",
            port=587,
            username="bot",
            password="secret",
            sender="bot@example.com"
        )
        server = smtp_cls.return_value.__enter__.return_value

        result = Mailer(settings, outbox=str(tmp_path)).deliver("ops@example.com", "S", HTML)

        assert result is None
        smtp_cls.assert_called_once_with("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot", "secret")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "ops@example.com"
        assert list(tmp_path.iterdir()) == []

    def test_plain_relay(self, smtp_cls, tmp_path):
        settings = SmtpSettings(host="relay.local", port=25, use_tls=False, sender="bot@example.com")
        server = smtp_cls.return_value.__enter__.return_value

        Mailer(settings, outbox=str(tmp_path)).deliver("ops@example.com", "S", HTML)

        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()
        assert server.send_message.call_args.args[0]["From"] == "bot@example.com"

    def test_sender_required(self, smtp_cls, tmp_path):
        settings = SmtpSettings(host="relay.local", port=25, use_tls=False)

        with pytest.raises(ConfigurationError, match="SMTP_SENDER"):
            Mailer(settings, outbox=str(tmp_path)).deliver("ops@example.com", "S", HTML)

        smtp_cls.assert_not_called()
