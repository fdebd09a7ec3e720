"""Rendering of documentation text into HTML comments.

Doc text may embed inline tags such as ``{@code x}`` or ``{@link Foo}``.
Tags are expanded first, producing Markdown with raw HTML fragments,
and the result is then rendered with Python-Markdown.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Optional, Union

import markdown
from markupsafe import escape

from dossier.generators.link_factory import LinkFactory
from dossier.output.documents import EMPTY_COMMENT, Comment

logger = logging.getLogger(__name__)

SUMMARY_REGEX = re.compile(r"(.*?\.)(?:\s|$)", re.DOTALL)
_TAG_START = re.compile(r"\{@(\w+)\s")
_LINK_SEPARATOR = re.compile(r"\s")


@dataclass(frozen=True)
class InlineTag:
    """A ``{@name text}`` span found in doc text.

    Attributes:
        name: Tag name, e.g. ``code`` or ``link``.
        text: Raw text between the tag prefix and its closing brace.
        start: Offset of the opening brace.
        end: Offset of the closing brace.
    """

    name: str
    text: str
    start: int
    end: int


def find_inline_tag_end(text: str, start: int) -> int:
    """Find the brace closing an inline tag.

    Nested ``{...}`` spans are skipped whole, so the enclosing tag keeps
    the nested source text.

    Args:
        text: The doc text.
        start: Offset just past the tag's opening brace.

    Returns:
        Offset of the matching ``}``, or -1 if it never closes.
    """
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return index
            depth -= 1
    return -1


def _find_tag_start(text: str, pos: int) -> Optional[re.Match]:
    match = _TAG_START.search(text, pos)
    if match is None or text.find("}", match.start()) == -1:
        return None
    return match


def scan_inline_tags(text: str) -> Iterator[Union[str, InlineTag]]:
    """Split doc text into literal spans and inline tags.

    An inline tag that never closes is not a tag: the text from its
    opening brace to the end of input is yielded as a literal span.

    Args:
        text: The doc text.

    Yields:
        Literal strings and InlineTag spans, in source order.
    """
    pos = 0
    while pos < len(text):
        match = _find_tag_start(text, pos)
        if match is None:
            yield text[pos:]
            return

        start = match.start()
        if start > pos:
            yield text[pos:start]

        end = find_inline_tag_end(text, start + 1)
        if end == -1:
            yield text[start:]
            return

        yield InlineTag(name=match.group(1), text=text[match.end() : end], start=start, end=end)
        pos = end + 1


def _split_link(text: str) -> tuple[str, str]:
    match = _LINK_SEPARATOR.search(text)
    if match is None:
        return text, text
    return text[: match.start()], text[match.start() + 1 :]


class CommentParser:
    """Turns doc text into rendered HTML Comments."""

    def __init__(self, extensions: tuple[str, ...] = ("tables",)) -> None:
        """Initialize the parser.

        Args:
            extensions: Python-Markdown extensions to enable.
        """
        self.md = markdown.Markdown(extensions=list(extensions))

    def get_summary(self, text: str, link_factory: LinkFactory) -> Comment:
        """Render the first sentence of ``text``.

        The summary is the text up to the first period followed by
        whitespace or the end of input; without one, the whole text.
        """
        return self.parse_comment(extract_summary(text), link_factory)

    def parse_comment(self, text: Optional[str], link_factory: LinkFactory) -> Comment:
        """Render doc text into a Comment.

        Args:
            text: Doc text with inline tags and Markdown.
            link_factory: Factory resolving ``{@link}`` targets.

        Returns:
            A single html-token Comment, or EMPTY_COMMENT when the text
            renders to nothing.
        """
        html = self.render_markdown(self.expand_inline_tags(text or "", link_factory))
        if not html:
            return EMPTY_COMMENT
        return Comment.from_html(html)

    def render_markdown(self, text: str) -> str:
        """Convert Markdown text to an HTML fragment."""
        if not text:
            return ""
        self.md.reset()
        return self.md.convert(text)

    def expand_inline_tags(self, text: str, link_factory: LinkFactory) -> str:
        """Replace every inline tag in ``text`` with its HTML rendering.

        Args:
            text: Doc text.
            link_factory: Factory resolving link targets.

        Returns:
            Markdown text with inline tags rendered.
        """
        parts = []
        for span in scan_inline_tags(text):
            if isinstance(span, str):
                parts.append(span)
            else:
                parts.append(self._render_tag(span, link_factory))
        return "".join(parts)

    def _render_tag(self, tag: InlineTag, link_factory: LinkFactory) -> str:
        if tag.name == "code":
            return f"<code>{escape(tag.text)}</code>"

        if tag.name in ("link", "linkplain"):
            symbol, display = _split_link(tag.text)
            link = link_factory.create_link(symbol)
            if tag.name == "link":
                display = f"<code>{display}</code>"
            if not link.href:
                logger.debug("Unresolved link target %s", symbol)
                return display
            return f'<a href="{link.href}">{display}</a>'

        return str(escape(tag.text))


def extract_summary(text: str) -> str:
    match = SUMMARY_REGEX.search(text or "")
    if match is None:
        return text or ""
    return match.group(1)
