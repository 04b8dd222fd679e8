"""Derive a document's canonical title from its body."""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

import frontmatter
import yaml
from pydantic import ValidationError

from vault_sync.data_models import (
    BoardBody,
    BoardDocument,
    ContentType,
    DocumentBody,
    NoteBody,
)

logger = logging.getLogger(__name__)

# Level-1 ATX heading on its own line: "# Title" (optionally closed with #s)
_MARKDOWN_H1 = re.compile(r"^[ ]{0,3}#[ \t]+(?P<text>.*?)(?:[ \t]+#+)?[ \t]*$", re.MULTILINE)
_HTML_H1 = re.compile(r"<h1(?:\s[^>]*)?>(?P<text>.*?)</h1\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_FENCE = re.compile(r"^[ ]{0,3}(```|~~~).*?^[ ]{0,3}\1[ \t]*$", re.MULTILINE | re.DOTALL)


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _strip_frontmatter(text: str) -> str:
    """Return the note body without its YAML front matter block.

    Malformed front matter is left in place; heading detection then simply
    runs over the raw text.
    """
    if not text.startswith("---"):
        return text
    try:
        return frontmatter.loads(text).content or ""
    except (yaml.YAMLError, TypeError, ValueError) as exc:
        # Older python-frontmatter releases fail on non-mapping front matter
        logger.debug("Ignoring unusable front matter: %s", exc)
        return text


def _clean_heading(raw: str) -> Optional[str]:
    text = html.unescape(_TAG.sub("", raw))
    text = _WHITESPACE.sub(" ", text).strip()
    return text or None


def _note_title(text: str) -> Optional[str]:
    body = _strip_frontmatter(text)
    # Headings inside fenced code blocks are not headings
    body = _FENCE.sub(lambda match: "\n" * match.group(0).count("\n"), body)

    candidates = []
    markdown_match = _MARKDOWN_H1.search(body)
    if markdown_match:
        candidates.append((markdown_match.start(), markdown_match.group("text")))
    html_match = _HTML_H1.search(body)
    if html_match:
        candidates.append((html_match.start(), html_match.group("text")))

    # First heading wins; an empty first heading means "no title"
    if not candidates:
        return None
    _, raw = min(candidates, key=lambda item: item[0])
    return _clean_heading(raw)


def _board_title(text: str) -> Optional[str]:
    try:
        board = BoardDocument.model_validate_json(text)
    except ValidationError as exc:
        logger.debug("Board body did not parse: %s", exc.error_count())
        return None
    title = _WHITESPACE.sub(" ", board.title).strip()
    return title or None


# ==============================================================================
# PUBLIC API
# ==============================================================================


def extract_title(content_type: ContentType, body: str) -> Optional[str]:
    """Return the canonical title carried by ``body``, if any.

    Notes use their first level-1 heading, written either as Markdown
    (``# Title``) or as an HTML ``<h1>`` from the rich-text editor. Boards use
    their ``title`` field. Malformed bodies never raise; they yield ``None``,
    which callers treat as "keep the current name".
    """
    if not isinstance(body, str) or not body.strip():
        return None
    if content_type is ContentType.BOARD:
        return _board_title(body)
    return _note_title(body)


def parse_body(content_type: ContentType, body: str) -> DocumentBody:
    """Parse a raw body into its tagged representation.

    Raises:
        ValueError: If a board body is not a valid board graph.
    """
    if content_type is ContentType.BOARD:
        try:
            return BoardBody(board=BoardDocument.model_validate_json(body))
        except ValidationError as exc:
            raise ValueError(f"Invalid board body: {exc}") from exc
    return NoteBody(text=body)


def serialize_body(document: DocumentBody) -> str:
    """Serialize a tagged body back into the string stored on disk."""
    if isinstance(document, BoardBody):
        return document.board.model_dump_json(by_alias=True, exclude_none=True)
    return document.text


def default_body(content_type: ContentType) -> str:
    """Initial body written for a freshly created document."""
    if content_type is ContentType.BOARD:
        return serialize_body(BoardBody(board=BoardDocument()))
    return ""
