"""Markdown rendering for question text shown on participant and projector views.

The server renders Markdown to an HTML fragment and leaves any ``$...$`` math
untouched for MathJax on the client, so every view shows the same markup.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from livequiz.core.models import Quiz

_EMPTY_FRAGMENT = "<p><em>No content provided.</em></p>"


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return _EMPTY_FRAGMENT
        return self._markdown.render(sanitized)

    def render_quiz(self, quiz: Quiz) -> dict[str, object]:
        """Quiz payload with the rendered question added as ``questionHtml``."""

        payload = quiz.to_payload()
        payload["questionHtml"] = self.render_fragment(quiz.question)
        return payload


# MarkdownIt is safe for concurrent read-only renders.
renderer = MarkdownMathRenderer()
