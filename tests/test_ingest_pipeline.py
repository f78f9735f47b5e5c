"""Tests for message parsing, HTML cleaning and name redaction."""

from datetime import datetime, timezone
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from tonedraft.errors import ParseError
from tonedraft.ingest.cleaning import html_to_text
from tonedraft.ingest.name_redactor import NameRedactor
from tonedraft.ingest.normalizer import EMPTY_BODY_PLACEHOLDER, EmailNormalizer


PLAIN_MESSAGE = """From: Alice Smith <alice@example.com>
To: Bob <bob@example.com>, carol@example.com
Cc: Dan <dan@example.com>
Reply-To: alice.replies@example.com
Subject: Lunch on Friday?
Date: Tue, 12 Aug 2025 16:44:56 +0000
Message-ID: <abc123@example.com>
In-Reply-To: <prev@example.com>
References: <root@example.com> <prev@example.com>

Hi Bob,

Are you free for lunch on Friday?

Thanks,
Alice
"""

MULTIPART_MESSAGE = """From: alice@example.com
To: bob@example.com
Subject: Report
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="XYZ"

--XYZ
Content-Type: multipart/alternative; boundary="ALT"

--ALT
Content-Type: text/plain; charset="utf-8"

Report attached.
--ALT
Content-Type: text/html; charset="utf-8"

<p>Report <b>attached</b>.</p>
--ALT--
--XYZ
Content-Type: application/pdf; name="report.pdf"
Content-Disposition: attachment; filename="report.pdf"
Content-Transfer-Encoding: base64

JVBERi0xLjQKJcfsj6IKNSAwIG9iago8PC9MZW5ndGggNiAwIFI+PgpzdHJlYW0K
--XYZ--
"""

HTML_ONLY_MESSAGE = """From: news@example.com
To: bob@example.com
Subject: Doc
MIME-Version: 1.0
Content-Type: text/html; charset="utf-8"

<html><body><p>Please review <a href="https://example.com/doc">the document</a>.</p><img src="cid:logo" alt="Logo"><p>Thanks</p></body></html>
"""


@pytest.fixture
def normalizer():
    return EmailNormalizer()


class TestEmailNormalizer:
    """Header extraction, body selection and the safe body."""

    def test_extracts_headers_and_addresses(self, normalizer):
        email = normalizer.parse(PLAIN_MESSAGE)

        assert email.sender.address == "alice@example.com"
        assert email.sender.name == "Alice Smith"
        assert [entry.address for entry in email.to] == ["bob@example.com", "carol@example.com"]
        assert [entry.address for entry in email.cc] == ["dan@example.com"]
        assert email.reply_to_address == "alice.replies@example.com"
        assert email.subject == "Lunch on Friday?"
        assert email.message_id == "abc123@example.com"
        assert email.in_reply_to == "prev@example.com"
        assert email.references == ["root@example.com", "prev@example.com"]
        assert email.date == datetime(2025, 8, 12, 16, 44, 56, tzinfo=timezone.utc)

    def test_prefers_plain_text_body(self, normalizer):
        email = normalizer.parse(PLAIN_MESSAGE)

        assert "Are you free for lunch on Friday?" in email.text_body
        assert email.html_body is None
        assert email.safe_body == email.text_body

    def test_safe_body_excludes_attachments_and_raw_is_untouched(self, normalizer):
        email = normalizer.parse(MULTIPART_MESSAGE)

        assert email.text_body == "Report attached."
        assert "<b>attached</b>" in email.html_body
        assert email.attachment_names == ["report.pdf"]
        assert email.has_attachments
        assert "JVBERi0" not in email.safe_body
        assert email.raw == MULTIPART_MESSAGE

    def test_html_only_body_is_converted_without_links_or_images(self, normalizer):
        email = normalizer.parse(HTML_ONLY_MESSAGE)

        assert "the document" in email.text_body
        assert "https://example.com/doc" not in email.text_body
        assert "Logo" not in email.text_body
        assert email.html_body is not None

    def test_empty_body_uses_placeholder(self, normalizer):
        email = normalizer.parse("From: a@example.com\nSubject: Empty\n\n")

        assert email.text_body == ""
        assert email.safe_body == EMPTY_BODY_PLACEHOLDER

    def test_missing_optional_fields_degrade_gracefully(self, normalizer):
        email = normalizer.parse("Subject: only a subject\n\nBody text here.\n")

        assert email.from_addresses == []
        assert email.to == []
        assert email.cc == []
        assert email.sender_address == ""
        assert email.message_id.startswith("generated-")
        assert email.date.tzinfo is not None

    def test_generated_message_id_is_stable(self, normalizer):
        raw = "Subject: no id\n\nHello\n"
        assert normalizer.parse(raw).message_id == normalizer.parse(raw).message_id

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   \n",
            "From: a@example.com\nContent-Type: multipart/mixed\n\nno boundary here\n",
            "Hello world without any headers",
        ],
    )
    def test_structurally_invalid_input_raises_parse_error(self, normalizer, raw):
        with pytest.raises(ParseError):
            normalizer.parse(raw)


class TestHtmlToText:
    def test_block_elements_become_lines(self):
        text = html_to_text("<div>First</div><div>Second<br>Third</div>")
        assert text.splitlines() == ["First", "Second", "Third"]

    def test_empty_input(self):
        assert html_to_text("") == ""


class TestNameRedactor:
    """Greeting/sign-off names, known names and contact details are masked."""

    def test_redacts_names_and_contacts(self):
        redactor = NameRedactor(["Alice Smith"])
        text = "Hi Bob,\nCall me at alice@example.com.\nThanks,\nAlice Smith"

        assert redactor.redact(text) == "Hi [NAME],\nCall me at [EMAIL].\nThanks,\n[NAME]"

    def test_known_names_are_case_insensitive(self):
        redactor = NameRedactor(["Priya"])
        assert redactor.redact("I told priya about it.") == "I told [NAME] about it."

    def test_lowercase_greeting_word_is_not_a_name(self):
        redactor = NameRedactor()
        assert redactor.redact("Hi there, quick one.") == "Hi there, quick one."

    def test_text_without_findings_is_unchanged(self):
        redactor = NameRedactor()
        assert redactor.redact("nothing to hide here") == "nothing to hide here"
