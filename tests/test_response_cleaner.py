"""
Tests for clean_response().
"""

import pytest

from grammarfix.ai.response_cleaner import clean_response


class TestCleanResponse:

    def test_plain_text_only_trimmed(self):
        assert clean_response("  I went to school.\n") == "I went to school."

    @pytest.mark.parametrize("raw", ["", None])
    def test_empty(self, raw):
        assert clean_response(raw) == ""

    def test_strips_end_token(self):
        assert clean_response("I went to school.<|eot_id|>") == "I went to school."

    def test_strips_full_header(self):
        raw = "<|start_header_id|>assistant<|end_header_id|>\n\nI went to school.<|eot_id|>"
        assert clean_response(raw) == "I went to school."

    def test_strips_bare_role_line(self):
        """A header that lost its tokens leaves the role word on its own line."""
        assert clean_response("assistant\n\nI went to school.") == "I went to school."

    def test_strips_role_label_with_colon(self):
        assert clean_response("Assistant:\nI went to school.") == "I went to school."

    def test_keeps_role_words_in_prose(self):
        text = "The user asked the assistant for help."
        assert clean_response(text) == text

    def test_partial_stream(self):
        assert clean_response("<|start_header_id|>assistant<|end_header_id|>\n\nI we") == "I we"
