"""Text encoding for fields the remote schema cannot store natively.

The remote database has no list-of-pairs column, so examples are packed into
one rich-text value::

    Mi casa es grande → My house is big

    La casa azul → The blue house

Blocks are separated by a blank line and each block holds exactly one
``sentence → translation`` pair.  Inside a field, three characters are
escaped so they can never be mistaken for delimiters:

==========  ==========
character   written as
==========  ==========
``\\``       ``\\\\``
newline     ``\\n``
``→``       ``\\u2192``
==========  ==========

Values written before escaping existed decode unchanged unless they contain
a backslash sequence listed above.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from wordbook.entry import Example

PAIR_SEPARATOR = " → "
BLOCK_DELIMITER = "\n\n"
#: Maximum characters per rich-text segment accepted by the remote API
RICH_TEXT_LIMIT = 2000

_ESCAPED_RE = re.compile(r"\\(\\|n|u2192)")
_UNESCAPE = {"\\": "\\", "n": "\n", "u2192": "→"}


def escape_field(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace("→", "\\u2192")


def unescape_field(text: str) -> str:
    return _ESCAPED_RE.sub(lambda m: _UNESCAPE[m.group(1)], text)


def encode_examples(examples: Iterable[Example]) -> str:
    """Pack *examples* into the blank-line separated text blob."""
    return BLOCK_DELIMITER.join(
        f"{escape_field(ex.sentence)}{PAIR_SEPARATOR}{escape_field(ex.translation)}"
        for ex in examples
    )


def decode_examples(text: str) -> list[Example]:
    """Unpack the text blob; blocks that are not exactly one pair are dropped."""
    examples: list[Example] = []
    for block in text.split(BLOCK_DELIMITER):
        parts = block.split(PAIR_SEPARATOR)
        if len(parts) != 2:
            continue
        sentence, translation = (unescape_field(p.strip()) for p in parts)
        if sentence and translation:
            examples.append(Example(sentence, translation))
    return examples


# ---------------------------------------------------------------------------
# Rich-text segments
# ---------------------------------------------------------------------------


def chunk_text(text: str, limit: int = RICH_TEXT_LIMIT) -> list[str]:
    """Split *text* into segments no longer than *limit* characters."""
    if not text:
        return []
    return [text[i : i + limit] for i in range(0, len(text), limit)]


def to_rich_text(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunk_text(text)]


def join_rich_text(rich_text: list[dict[str, Any]] | None) -> str:
    """Concatenate the ``plain_text`` of every segment of a rich-text value."""
    if not rich_text:
        return ""
    parts: list[str] = []
    for segment in rich_text:
        plain = segment.get("plain_text")
        if plain is None:
            plain = (segment.get("text") or {}).get("content", "")
        parts.append(plain)
    return "".join(parts)
