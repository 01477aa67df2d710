import html
import os
import re
from typing import Optional

import bleach

# Tags allowed in organizer-authored rich text (event descriptions, closed messages)
ALLOWED_TAGS = [
    "p",
    "br",
    "strong",
    "em",
    "u",
    "a",
    "ul",
    "ol",
    "li",
    "h2",
    "h3",
    "h4",
    "blockquote",
]
ALLOWED_ATTRIBUTES = {"a": ["href", "title", "target"]}


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters so user input can be embedded in email markup.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def sanitize_html(html_content: Optional[str]) -> Optional[str]:
    """Strip everything but a small set of formatting tags"""
    if not html_content:
        return html_content
    return bleach.clean(
        html_content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True,
    )


def sanitize_filename(filename: str) -> str:
    """
    Make a value safe to use in a Content-Disposition filename.
    """
    filename = os.path.basename(filename or "")
    filename = re.sub(r"[^\w\s\-\.]", "", filename)
    filename = re.sub(r"\s+", "_", filename.strip(". "))

    if len(filename) > 120:
        name, ext = os.path.splitext(filename)
        filename = name[: 120 - len(ext)] + ext

    return filename or "download"
