"""
Message formatter — raw chat text to display markup.

Pipeline:
- trim + hard cut to ``max_length``
- newlines become ``<br>``
- allow-list sanitize (see ``sltbot.markup``)
- ``embed[:type]:`` prefix -> embed container, body formatted line by line
- otherwise ``strong:``, ``italic:``, ... shortcuts, one per line
- otherwise ``img:``, ``audio:``, ... attachments on the whole text

Unknown prefixes are not an error; they fall through as sanitized text.
"""

from __future__ import annotations

from typing import Any, Callable

from sltbot.markup import EMBED_TYPES, LINE_BREAK, MEDIA_KINDS, media_tag, sanitize, wrap_embed

DEFAULT_MAX_LENGTH = 2000


# ---------------------------------------------------------------------------
# Prefix tables
# ---------------------------------------------------------------------------

def _embed_prefix(embed_type: str) -> str:
    return "embed:" if embed_type == "embed" else f"embed:{embed_type}:"


# Longest first, so "embed:info:" is tried before "embed:"
EMBED_PREFIXES: list[tuple[str, str]] = sorted(
    ((_embed_prefix(t), t) for t in EMBED_TYPES),
    key=lambda item: len(item[0]),
    reverse=True,
)

# Checked in this order; first match wins
INLINE_SHORTCUTS: list[tuple[str, Callable[[str], str]]] = [
    ("strong:", lambda s: f"<strong>{s}</strong>"),
    ("italic:", lambda s: f"<em>{s}</em>"),
    ("strike:", lambda s: f"<s>{s}</s>"),
    ("underline:", lambda s: f"<u>{s}</u>"),
    ("code:", lambda s: f"<code>{s}</code>"),
    ("codeblock:", lambda s: f"<pre><code>{s}</code></pre>"),
    ("spoiler:", lambda s: f'<span class="spoiler">{s}</span>'),
    ("quote:", lambda s: f"<blockquote>{s}</blockquote>"),
    ("h1:", lambda s: f"<h1>{s}</h1>"),
    ("h2:", lambda s: f"<h2>{s}</h2>"),
    ("h3:", lambda s: f"<h3>{s}</h3>"),
    ("ul:", lambda s: f"<ul><li>{s}</li></ul>"),
]

# "imgspoiler:" cannot be shadowed by "img:" because the colon is part of the key
ATTACHMENT_PREFIXES: list[tuple[str, str]] = [(f"{kind}:", kind) for kind in MEDIA_KINDS]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def match_embed(text: str) -> tuple[str, str] | None:
    """Return ``(embed_type, body)`` if ``text`` opens with an embed prefix."""
    for prefix, embed_type in EMBED_PREFIXES:
        if text[:len(prefix)].lower() == prefix:
            return embed_type, text[len(prefix):]
    return None


def format_line(line: str) -> tuple[str, bool]:
    """Apply the first matching inline shortcut. Returns ``(markup, matched)``."""
    for prefix, wrap in INLINE_SHORTCUTS:
        if line.startswith(prefix):
            return wrap(line[len(prefix):]), True
    return line, False


def format_lines(text: str) -> tuple[str, bool]:
    lines = [format_line(line) for line in text.split(LINE_BREAK)]
    matched = any(hit for _, hit in lines)
    return LINE_BREAK.join(markup for markup, _ in lines), matched


def match_attachment(text: str) -> str | None:
    for prefix, kind in ATTACHMENT_PREFIXES:
        if text.startswith(prefix):
            url = text[len(prefix):].strip()
            if url:
                return media_tag(kind, url)
    return None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def format_message(raw: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Convert a raw message into sanitized display markup.

    Args:
        raw: The message text. Anything that is not a non-empty ``str``
            yields ``""``.
        max_length: Characters kept after trimming. The cut happens before
            any markup is added.

    Returns:
        Markup ready to be emitted to the platform.
    """
    if not isinstance(raw, str) or not raw:
        return ""

    text = raw.strip()[:max_length]
    text = sanitize(text.replace("\n", LINE_BREAK))
    if not text:
        return ""

    embed = match_embed(text)
    if embed is not None:
        embed_type, body = embed
        formatted, _ = format_lines(body)
        return wrap_embed(formatted, embed_type)

    formatted, matched = format_lines(text)
    if matched:
        return formatted

    return match_attachment(formatted) or formatted
