"""
Fluent construction of embed blocks.

Usage::

    embed = (
        EmbedBuilder("info")
        .set_title("Server status")
        .set_description("All systems nominal")
        .add_field("Uptime", "3 days", inline=True)
        .code("print('hi')", language="python")
    )
    await ctx.reply(embed)

``build()`` only reads state, so the same builder can be rendered any number
of times.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass

from sltbot.markup import EMBED_TYPES, LINE_BREAK, media_tag, sanitize_text, wrap_embed

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_LANGUAGE = re.compile(r"^[A-Za-z0-9_+#.-]+$")


def _check_color(color: str | None) -> str | None:
    if color is None:
        return None
    if not _HEX_COLOR.match(color):
        raise ValueError(f"Invalid color {color!r}, expected #rgb or #rrggbb")
    return color


@dataclass
class _Author:
    name: str
    icon_url: str | None = None


class EmbedBuilder:
    """Accumulates embed parts and renders them to markup."""

    def __init__(self, embed_type: str = "embed") -> None:
        self._type = "embed"
        self._title = ""
        self._description = ""
        self._fields: list[str] = []
        self._attachment: str | None = None
        self._author: _Author | None = None
        self._show_icon = True
        self._color: str | None = None
        self._icon: str | None = None
        self.set_type(embed_type)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_type(self, embed_type: str) -> "EmbedBuilder":
        if embed_type not in EMBED_TYPES:
            raise ValueError(
                f"Unknown embed type {embed_type!r}, expected one of {sorted(EMBED_TYPES)}"
            )
        self._type = embed_type
        return self

    def set_title(self, title: str) -> "EmbedBuilder":
        self._title = title
        return self

    def set_description(self, description: str) -> "EmbedBuilder":
        self._description = description
        return self

    def add_field(
        self,
        name: str,
        value: str,
        inline: bool = False,
        color: str | None = None,
        icon: str | None = None,
    ) -> "EmbedBuilder":
        """Append a label/value pair. Rendered immediately into a fragment."""
        classes = "embed-field embed-field-inline" if inline else "embed-field"
        style = f' style="color: {_check_color(color)}"' if color else ""
        icon_html = f'<span class="embed-field-icon">{sanitize_text(icon)}</span>' if icon else ""
        self._fields.append(
            f'<div class="{classes}"{style}>'
            f"{icon_html}"
            f'<strong class="embed-field-name">{sanitize_text(name)}</strong>'
            f'<span class="embed-field-value">{sanitize_text(value)}</span>'
            f"</div>"
        )
        return self

    def code(self, content: str, language: str | None = None) -> "EmbedBuilder":
        """Append a preformatted block. ``language`` is only a highlighting hint."""
        lang_class = ""
        if language and _LANGUAGE.match(language):
            lang_class = f' class="language-{language}"'
        self._fields.append(f"<pre><code{lang_class}>{html.escape(content)}</code></pre>")
        return self

    def set_attachment(self, url: str | None) -> "EmbedBuilder":
        self._attachment = url
        return self

    def set_author(self, name: str, icon_url: str | None = None) -> "EmbedBuilder":
        self._author = _Author(name, icon_url)
        return self

    def show_icon(self, flag: bool = True) -> "EmbedBuilder":
        self._show_icon = flag
        return self

    def set_color(self, color: str | None) -> "EmbedBuilder":
        self._color = _check_color(color)
        return self

    def set_icon(self, icon: str | None) -> "EmbedBuilder":
        self._icon = icon
        return self

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def _render_author(self) -> str:
        if self._author is None:
            return ""
        avatar = media_tag("img", self._author.icon_url) if self._author.icon_url else ""
        return f'<div class="embed-author">{avatar}{sanitize_text(self._author.name)}</div>'

    def build(self) -> str:
        """Render the embed. Empty parts are skipped, never left as separators."""
        segments = [
            self._render_author(),
            f"<h3>{sanitize_text(self._title)}</h3>" if self._title else "",
            sanitize_text(self._description) if self._description else "",
            "".join(self._fields),
            media_tag("img", self._attachment) if self._attachment else "",
        ]
        body = LINE_BREAK.join(s for s in segments if s)
        icon = sanitize_text(self._icon) if self._icon else None
        return wrap_embed(
            body,
            self._type,
            icon=icon,
            show_icon=self._show_icon,
            color=self._color,
        )

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        return f"EmbedBuilder(type={self._type!r}, title={self._title!r}, fields={len(self._fields)})"
