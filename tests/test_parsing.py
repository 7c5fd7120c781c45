"""
Tests for the parsing module.
"""

import pytest
from outlook_gateway.parsing import (
    html_to_text,
    format_email_summary,
    format_email_body,
    format_event,
    format_folder,
)


class TestHtmlToText:
    """Tests for HTML to text conversion."""

    def test_html_to_text_basic(self):
        """Test basic HTML to text conversion."""
        assert html_to_text("<p>Hello World</p>") == "Hello World"

    def test_html_to_text_with_style_tags(self):
        """Test that style tags and content are removed."""
        result = html_to_text("<style>.class { color: red; }</style><p>Content</p>")
        assert "Content" in result
        assert "color" not in result

    def test_html_to_text_with_script_tags(self):
        """Test that script tags and content are removed."""
        result = html_to_text("<script>alert('test');</script><p>Safe content</p>")
        assert "Safe content" in result
        assert "alert" not in result
        assert "script" not in result.lower()

    def test_html_to_text_with_entities(self):
        """Test HTML entity decoding."""
        result = html_to_text("<p>&amp; &lt; &gt; &quot;</p>")
        assert result == '& < > "'

    def test_html_to_text_empty_input(self):
        """Test handling of empty input."""
        assert html_to_text("") == ""
        assert html_to_text(None) == ""

    def test_html_to_text_full_document(self, sample_html_email_body):
        """Test a complete HTML email."""
        result = html_to_text(sample_html_email_body)

        assert "Hello World!" in result
        assert "This is a test email." in result
        assert "Item 1" in result
        assert "blue" not in result
        assert "<" not in result.split("Special chars:")[0]

    def test_html_to_text_with_line_breaks(self):
        """Test that br, p, div tags create line breaks."""
        result = html_to_text("<p>First</p><br><div>Second</div><p>Third</p>")
        lines = [line.strip() for line in result.splitlines() if line.strip()]
        assert lines == ["First", "Second", "Third"]


class TestFormatEmailSummary:
    """Tests for email summary formatting."""

    def test_format_email_summary(self, sample_email):
        """Test basic email summary formatting."""
        result = format_email_summary(sample_email)

        assert result["id"] == "AAMkAGI2TG93AAA="
        assert result["subject"] == "Test Subject"
        assert result["from"] == "john@example.com"
        assert result["from_name"] == "John Doe"
        assert result["to"] == ["jane@example.com"]
        assert result["date"] == "2024-01-15"
        assert result["datetime"] == "2024-01-15T10:30:00Z"
        assert result["is_read"] is False
        assert result["has_attachments"] is True
        assert result["importance"] == "high"
        assert result["conversation_id"] == "AAQkAGI2TG93AAA="

    def test_format_email_summary_missing_fields(self):
        """Test formatting with missing fields."""
        result = format_email_summary({"id": "test123"})

        assert result["id"] == "test123"
        assert result["subject"] == ""
        assert result["from"] == ""
        assert result["to"] == []
        assert result["date"] == ""
        assert result["has_attachments"] is False

    def test_preview_truncated(self):
        """Test that long previews are cut to 200 characters."""
        result = format_email_summary({"id": "x", "bodyPreview": "a" * 500})
        assert len(result["preview"]) == 200


class TestFormatEmailBody:
    """Tests for email body formatting."""

    def test_format_email_body_text(self, sample_email_with_body):
        """Test email body formatting with text conversion."""
        result = format_email_body(sample_email_with_body, "text")

        assert result["id"] == "AAMkAGI2TG93AAA="
        assert result["body"] == "Hello World"
        assert result["from"] == {"address": "john@example.com", "name": "John Doe"}
        assert result["to"] == [{"address": "jane@example.com", "name": "Jane Smith"}]
        assert result["cc"] == []
        assert result["is_read"] is True

    def test_format_email_body_html(self, sample_email_with_body):
        """Test email body formatting keeping HTML."""
        result = format_email_body(sample_email_with_body, "html")
        assert "<p>Hello World</p>" in result["body"]

    def test_plain_text_body_untouched(self):
        """Test that text bodies are not run through the HTML converter."""
        data = {"id": "x", "body": {"contentType": "text", "content": "a < b & c"}}
        assert format_email_body(data)["body"] == "a < b & c"


class TestFormatEvent:
    """Tests for calendar event formatting."""

    def test_format_event(self):
        """Test event formatting."""
        event = {
            "id": "event-1",
            "subject": "Planning",
            "organizer": {"emailAddress": {"address": "boss@example.com", "name": "Boss"}},
            "attendees": [{"emailAddress": {"address": "a@example.com"}, "type": "required"}],
            "start": {"dateTime": "2025-11-11T10:00:00", "timeZone": "UTC"},
            "end": {"dateTime": "2025-11-11T11:00:00", "timeZone": "UTC"},
            "location": {"displayName": "Room 1"},
            "responseStatus": {"response": "accepted"},
        }
        result = format_event(event)

        assert result["organizer"] == "boss@example.com"
        assert result["organizer_name"] == "Boss"
        assert result["attendees"] == ["a@example.com"]
        assert result["start"] == "2025-11-11T10:00:00"
        assert result["location"] == "Room 1"
        assert result["response"] == "accepted"
        assert result["is_cancelled"] is False

    def test_format_event_missing_fields(self):
        """Test formatting a freshly created event with few fields."""
        result = format_event({"id": "synthetic-event-1", "subject": "X"})

        assert result["start"] == ""
        assert result["attendees"] == []
        assert result["response"] == "none"


class TestFormatFolder:
    """Tests for folder formatting."""

    def test_format_folder(self):
        result = format_folder({
            "id": "portaeh",
            "displayName": "PORTAEH",
            "parentFolderId": "projects",
            "childFolderCount": 0,
            "unreadItemCount": 3,
        })

        assert result == {
            "id": "portaeh",
            "name": "PORTAEH",
            "parent_folder_id": "projects",
            "child_folder_count": 0,
            "unread_count": 3,
            "total_count": 0,
        }
