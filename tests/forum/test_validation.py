"""Tests for reply content validation."""

import pytest

from src.forum.validation import contains_profanity, validate_reply_content


class TestValidateReplyContent:
    def test_valid(self):
        assert validate_reply_content("I loved the ending.") == []

    @pytest.mark.parametrize("content", ["", "   \n\t", None])
    def test_required(self, content):
        assert validate_reply_content(content) == ["Reply content is required"]

    def test_max_length_counts_trimmed_text(self):
        assert validate_reply_content("  " + "a" * 50000 + "  ") == []
        assert validate_reply_content("a" * 50001) == [
            "Reply cannot exceed 50,000 characters"
        ]

    def test_custom_max_length(self):
        assert validate_reply_content("abcdef", max_length=5) == [
            "Reply cannot exceed 5 characters"
        ]

    def test_reports_violations_in_order(self):
        errors = validate_reply_content("shit " * 20, max_length=10)

        assert errors == [
            "Reply cannot exceed 10 characters",
            "Reply contains inappropriate language",
        ]


class TestContainsProfanity:
    @pytest.mark.parametrize("text", ["Total BULLSHIT", "what the fuck", "Shit."])
    def test_detects_words(self, text):
        assert contains_profanity(text) is True

    @pytest.mark.parametrize("text", ["Scunthorpe United", "a classic", "shitake? no, shiitake"])
    def test_whole_words_only(self, text):
        assert contains_profanity(text) is False
