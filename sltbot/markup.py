"""
Markup vocabulary shared by the formatter and the embed builder.

The platform renders a small HTML subset. Anything a chat user sends goes
through ``sanitize`` first; tags outside the allow-list are stripped (their
text kept), and ``script``/``style`` are dropped together with their content.
"""

from __future__ import annotations

import nh3


# ---------------------------------------------------------------------------
# Allow-list
# ---------------------------------------------------------------------------

ALLOWED_TAGS: set[str] = {
    "p", "b", "strong", "i", "em", "u", "s", "del",
    "code", "pre", "blockquote", "h1", "h2", "h3", "ul", "ol", "li",
    "span", "div", "br",
    "img", "audio", "video", "source",
}

ALLOWED_ATTRIBUTES: dict[str, set[str]] = {
    "img": {"src", "alt"},
    "audio": {"src", "controls"},
    "video": {"src", "controls"},
    "source": {"src", "type"},
}

# nh3 rejects "class" in ALLOWED_ATTRIBUTES when this is set
ALLOWED_CLASSES: dict[str, set[str]] = {
    "span": {"spoiler"},
}

URL_SCHEMES: set[str] = {"http", "https"}

LINE_BREAK = "<br>"


def sanitize(text: str) -> str:
    """Strip everything outside the allow-list."""
    return nh3.clean(
        text,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        allowed_classes=ALLOWED_CLASSES,
        url_schemes=URL_SCHEMES,
    )


def sanitize_text(text: str) -> str:
    """Sanitize operator-supplied text, keeping its line breaks."""
    return sanitize(text.replace("\n", LINE_BREAK))


# ---------------------------------------------------------------------------
# Embed types
# ---------------------------------------------------------------------------

# tag -> (css class, default icon)
EMBED_TYPES: dict[str, tuple[str, str | None]] = {
    "embed": ("embed-default", "💬"),
    "note": ("embed-note", "📝"),
    "success": ("embed-success", "✅"),
    "info": ("embed-info", "ℹ️"),
    "warn": ("embed-warn", "⚠️"),
    "error": ("embed-error", "❌"),
    "clean": ("embed-clean", None),
}


def resolve_icon(embed_type: str, override: str | None = None) -> str | None:
    if override:
        return override
    return EMBED_TYPES[embed_type][1]


def wrap_embed(
    body: str,
    embed_type: str = "embed",
    *,
    icon: str | None = None,
    show_icon: bool = True,
    color: str | None = None,
) -> str:
    """Wrap already-rendered markup in an embed container.

    The icon span is only emitted when ``show_icon`` is set and an icon
    resolves (explicit ``icon`` first, then the type default).
    """
    css_class = EMBED_TYPES[embed_type][0]
    style = f' style="border-color: {color}"' if color else ""
    resolved = resolve_icon(embed_type, icon) if show_icon else None
    icon_html = f'<span class="embed-icon">{resolved}</span>' if resolved else ""
    return (
        f'<div class="embed {css_class}"{style}>'
        f"{icon_html}"
        f'<div class="embed-body">{body}</div>'
        f"</div>"
    )


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

_MEDIA_TEMPLATES: dict[str, str] = {
    "img": '<img src="{url}">',
    "imgspoiler": '<span class="spoiler"><img src="{url}"></span>',
    "audio": '<audio controls src="{url}"></audio>',
    "video": '<video controls src="{url}"></video>',
}

MEDIA_KINDS = tuple(_MEDIA_TEMPLATES)


def media_tag(kind: str, url: str) -> str:
    """Build a self-contained media tag for ``url``.

    The result goes back through ``sanitize`` so a crafted URL cannot smuggle
    extra attributes or a non-http scheme into the tag.
    """
    return sanitize(_MEDIA_TEMPLATES[kind].format(url=url.strip()))
