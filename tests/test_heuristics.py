"""Tests for footer placement heuristics."""

import pytest

from email_footer.processor.heuristics import (
    append_html_footer,
    append_plain_footer,
    insert_before_blockquote,
    insert_before_reply_header,
    insert_html_footer,
    insert_plain_footer,
    replace_html_delimiter,
    replace_plain_delimiter,
)

FOOTER = "Jane Doe"
HTML_FOOTER = "<b>Jane</b>"


class TestPlainFooter:
    """Tests for plain text footer placement."""

    def test_append_without_reply(self):
        """Test footer is appended to a body without delimiter or reply header."""
        splice = insert_plain_footer("First line\n", "Footer")

        assert splice.body == "First line\nFooter\n\n"
        assert splice.tier == "append"
        assert splice.inserted

    def test_delimiter_replaced(self):
        """Test a line holding only -- is replaced by the footer."""
        splice = insert_plain_footer("Thanks\n--\nOld sig\n", FOOTER)

        assert splice.body == "Thanks\nJane Doe\n\nOld sig\n"
        assert splice.tier == "delimiter"

    def test_delimiter_with_trailing_whitespace(self):
        """Test the conventional '-- ' delimiter is recognized."""
        assert replace_plain_delimiter("Thanks\n-- \nOld\n", FOOTER) == "Thanks\nJane Doe\n\nOld\n"

    def test_only_first_delimiter_replaced(self):
        """Test only the first delimiter line is used."""
        result = replace_plain_delimiter("a\n--\nb\n--\nc\n", FOOTER)

        assert result == "a\nJane Doe\n\nb\n--\nc\n"

    def test_dashes_inside_text_ignored(self):
        """Test -- within a line is not a delimiter."""
        assert replace_plain_delimiter("this -- that\n", FOOTER) is None
        assert replace_plain_delimiter("---\n", FOOTER) is None

    def test_delimiter_takes_priority_over_reply_header(self):
        """Test delimiter tier wins when both could apply."""
        body = "Reply\n--\nOn Mon, Bob wrote:\n> hi\n"

        splice = insert_plain_footer(body, FOOTER)

        assert splice.body == "Reply\nJane Doe\n\nOn Mon, Bob wrote:\n> hi\n"
        assert splice.tier == "delimiter"

    def test_inserted_before_reply_header(self):
        """Test footer goes above the 'On ... wrote:' line."""
        body = "Sounds good.\n\nOn Mon, 1 Jan 2024, Bob wrote:\n> Lunch?\n"

        splice = insert_plain_footer(body, FOOTER)

        assert splice.body == (
            "Sounds good.\n\nJane Doe\n\nOn Mon, 1 Jan 2024, Bob wrote:\n> Lunch?\n"
        )
        assert splice.tier == "reply_header"

    def test_inserted_before_from_header(self):
        """Test Outlook style 'From:' quote headers are recognized."""
        body = "Done.\n\nFrom: Bob <bob@example.com>\nSent: Monday\n"

        result = insert_before_reply_header(body, FOOTER)

        assert result == "Done.\n\nJane Doe\n\nFrom: Bob <bob@example.com>\nSent: Monday\n"

    def test_reply_header_case_insensitive(self):
        """Test reply header matching ignores case."""
        result = insert_before_reply_header("ok\non monday bob WROTE:\n> x\n", FOOTER)

        assert result == "ok\nJane Doe\n\non monday bob WROTE:\n> x\n"

    def test_body_starting_with_reply_header_appends(self):
        """Test a reply with nothing above the quote gets the footer at the end."""
        body = "On Mon, Bob wrote:\n> Lunch?\n"

        assert insert_before_reply_header(body, FOOTER) is None
        splice = insert_plain_footer(body, FOOTER)
        assert splice.body == "On Mon, Bob wrote:\n> Lunch?\nJane Doe\n\n"
        assert splice.tier == "append"

    def test_from_without_space_is_not_reply_header(self):
        """Test 'From:' must be followed by whitespace."""
        assert insert_before_reply_header("Hi\nFrom:bob\n", FOOTER) is None

    def test_append_to_empty_body(self):
        """Test append on an empty body."""
        assert append_plain_footer("", FOOTER) == "Jane Doe\n\n"


class TestHtmlFooter:
    """Tests for HTML footer placement."""

    def test_append_inside_html(self):
        """Test footer is appended inside <html> when there is no <body>."""
        splice = insert_html_footer("<html>First line\n</html>\n", "<b>footer</b>")

        assert splice.body == "<html>First line\n<b>footer</b></html>\n"
        assert splice.tier == "append"

    def test_append_inside_body(self):
        """Test <body> is preferred over <html>."""
        result = append_html_footer("<html><body><p>Hi</p></body></html>", HTML_FOOTER)

        assert result == "<html><body><p>Hi</p><b>Jane</b></body></html>"

    def test_append_to_fragment(self):
        """Test markup without <html> or <body> is concatenated."""
        assert append_html_footer("<p>Hi</p>", HTML_FOOTER) == "<p>Hi</p><b>Jane</b>"

    def test_append_keeps_entities_and_void_tags(self):
        """Test &nbsp; and <br> are written back as they were."""
        markup = "<html><body>Hi&nbsp;Bob<br>Thanks</body></html>"

        result = append_html_footer(markup, HTML_FOOTER)

        assert result == "<html><body>Hi&nbsp;Bob<br>Thanks<b>Jane</b></body></html>"
        assert "\xa0" not in result

    def test_delimiter_line_replaced(self):
        """Test a -- line followed by <br> is replaced."""
        markup = "<p>Hi</p>\n--<br>\n<p>Old</p>"

        splice = insert_html_footer(markup, HTML_FOOTER)

        assert splice.body == "<p>Hi</p>\n<b>Jane</b><br>\n<p>Old</p>"
        assert splice.tier == "delimiter"

    def test_delimiter_between_br_tags(self):
        """Test -- joined to surrounding text by <br> tags on one line."""
        result = replace_html_delimiter("Thanks<br>--<br>Bob", HTML_FOOTER)

        assert result == "Thanks<br><b>Jane</b><br>Bob"

    def test_delimiter_in_text_ignored(self):
        """Test -- inside running text is not a delimiter."""
        assert replace_html_delimiter("<p>this -- that</p>", HTML_FOOTER) is None

    def test_footer_at_top_of_block_before_blockquote(self):
        """Test footer leads the div that precedes the quote."""
        markup = "<html><body><div>Sounds good</div><blockquote>Old</blockquote></body></html>"

        splice = insert_html_footer(markup, HTML_FOOTER)

        assert splice.body == (
            "<html><body><div><b>Jane</b>Sounds good</div>"
            "<blockquote>Old</blockquote></body></html>"
        )
        assert splice.tier == "blockquote"

    def test_nearest_block_sibling_used(self):
        """Test non-block siblings between block and quote are skipped."""
        markup = "<p>First</p><div>Reply</div><span>x</span><blockquote>Old</blockquote>"

        result = insert_before_blockquote(markup, HTML_FOOTER)

        assert "<div><b>Jane</b>Reply</div>" in result
        assert "<p>First</p>" in result

    def test_reply_header_in_blockquote_parent(self):
        """Test footer goes before the reply header when no block precedes the quote."""
        markup = "<body>Reply text<br>\nOn Mon, Bob wrote:<br>\n<blockquote>Old</blockquote></body>"

        result = insert_before_blockquote(markup, HTML_FOOTER)

        assert result is not None
        assert "Reply text" in result
        assert "<b>Jane</b>On Mon, Bob wrote:" in result
        assert result.index("<b>Jane</b>") < result.index("<blockquote>")

    def test_blockquote_keeps_entities_and_void_tags(self):
        """Test markup around the inserted footer is not re-encoded."""
        markup = "<body>Reply&nbsp;text<br>\nOn Mon, Bob wrote:<br>\n<blockquote>Old</blockquote></body>"

        result = insert_before_blockquote(markup, HTML_FOOTER)

        assert result == (
            "<body>Reply&nbsp;text<br>\n<b>Jane</b>On Mon, Bob wrote:<br>\n"
            "<blockquote>Old</blockquote></body>"
        )

    def test_parent_starting_with_reply_header_appends(self):
        """Test footer is appended when the reply header opens the content."""
        markup = "<body>On Mon, Bob wrote:<br><blockquote>Old</blockquote></body>"

        assert insert_before_blockquote(markup, HTML_FOOTER) is None
        splice = insert_html_footer(markup, HTML_FOOTER)
        assert splice.tier == "append"
        assert splice.body.endswith("<b>Jane</b></body>")

    def test_no_blockquote(self):
        """Test blockquote tier does not apply without a quote."""
        assert insert_before_blockquote("<p>Hi</p>", HTML_FOOTER) is None

    @pytest.mark.parametrize(
        "markup",
        [
            "<html><body><div>Reply</div>\n--<br>\n<blockquote>Old</blockquote></body></html>",
            "<div>Reply</div><br>--<br>sig<blockquote>Old</blockquote>",
        ],
    )
    def test_delimiter_takes_priority_over_blockquote(self, markup: str):
        """Test delimiter tier wins over blockquote tier."""
        splice = insert_html_footer(markup, HTML_FOOTER)

        assert splice.tier == "delimiter"
        assert "<div>Reply</div>" in splice.body
        assert "--" not in splice.body
