"""Unit tests for chat message rendering helpers."""

import pytest
import pytest_check as check

from src.models.schemas import Message, Role
from src.ui.chat_page import SEND_KEY_EVENT, _message_html, escape_html, markdown_to_html


class TestMarkdownToHtml:
    """Tests for markdown rendering of assistant replies."""

    def test_formatting(self) -> None:
        html = markdown_to_html("**bold** and `code`")

        check.is_in("<strong>bold</strong>", html)
        check.is_in("<code", html)

    def test_https_link_becomes_anchor(self) -> None:
        html = markdown_to_html("[docs](https://example.com/guide)")

        check.is_in('href="https://example.com/guide"', html)
        check.is_in('rel="noopener"', html)

    @pytest.mark.parametrize(
        "url", ["javascript:alert(1)", "data:text/html,hi", "JavaScript:void(0)"]
    )
    def test_non_http_links_stay_text(self, url: str) -> None:
        html = markdown_to_html(f"[click]({url})")

        assert "<a " not in html

    def test_quotes_cannot_break_out_of_href(self) -> None:
        html = markdown_to_html('[x](https://example.com/" onmouseover="alert(1))')

        check.is_not_in('" onmouseover="', html)
        check.is_in("&quot;", html)

    def test_raw_html_is_escaped(self) -> None:
        html = markdown_to_html("<script>alert('hi')</script>")

        check.is_not_in("<script>", html)
        check.is_in("&lt;script&gt;", html)


class TestMessageHtml:
    """Tests for per-role message rendering."""

    def test_user_text_is_escaped_not_formatted(self) -> None:
        html = _message_html(Message(role=Role.USER, content="**hi** <b>\nthere"))

        assert html == "**hi** &lt;b&gt;<br>there"

    def test_escape_html(self) -> None:
        assert escape_html("a & 'b'") == "a &amp; &#39;b&#39;"


class TestKeyBinding:
    def test_shift_enter_does_not_send(self) -> None:
        """Only an unmodified Enter press is bound to sending."""
        check.is_true(SEND_KEY_EVENT.startswith("keydown.enter"))
        check.is_in(".exact", SEND_KEY_EVENT)
