"""Heuristics that decide where a footer goes in a reply.

A footer goes where a person would have typed their signature: in place of
an explicit ``--`` delimiter, otherwise just above the quoted original
(bottom-posted or inline replies), otherwise at the end.

Every tier is a pure function returning the new content, or None when it
does not apply, so each can be tested on its own.
"""

import re
from typing import Callable, NamedTuple

from bs4 import BeautifulSoup

# English-only. Other languages and clients are not recognized.
REPLY_HEADER_PATTERN = r"From:[ \t]+.*|On[ \t]+.*[ \t]+wrote:"

_REPLY_LINE_RE = re.compile(rf"^(?:{REPLY_HEADER_PATTERN})$", re.IGNORECASE | re.MULTILINE)
_REPLY_START_RE = re.compile(rf"^(?:{REPLY_HEADER_PATTERN})", re.IGNORECASE | re.MULTILINE)
_STARTS_WITH_REPLY_RE = re.compile(rf"(?:{REPLY_HEADER_PATTERN})(?:\n|\Z)", re.IGNORECASE)
_STARTS_WITH_HTML_REPLY_RE = re.compile(rf"(?:{REPLY_HEADER_PATTERN})<br\s*/?>", re.IGNORECASE)

_PLAIN_DELIMITER_RE = re.compile(r"^--[ \t]*$", re.MULTILINE)
_HTML_DELIMITER_RE = re.compile(
    r"^((?:.*<br\s*/?>)?)--((?:<br\s*/?>.*)?)$", re.IGNORECASE | re.MULTILINE
)

HTML_PARSER = "html.parser"
# Keeps entities such as &nbsp; and writes void tags as <br>
HTML_FORMATTER = "html5"


class Splice(NamedTuple):
    """Outcome of a footer insertion."""

    body: str
    inserted: bool
    tier: str  # delimiter, reply_header, blockquote, append


Tier = Callable[[str, str], str | None]


# Plain text tiers


def replace_plain_delimiter(body: str, footer: str) -> str | None:
    """Replace the first ``--`` line with the footer and a blank line."""
    if not _PLAIN_DELIMITER_RE.search(body):
        return None
    return _PLAIN_DELIMITER_RE.sub(lambda m: f"{footer}\n", body, count=1)


def insert_before_reply_header(body: str, footer: str) -> str | None:
    """Insert the footer above the first reply header line.

    Does not apply when the body itself starts with a reply header, as
    there is no reply text above the quote to sign.
    """
    if _STARTS_WITH_REPLY_RE.match(body):
        return None

    match = _REPLY_LINE_RE.search(body)
    if not match:
        return None

    return f"{body[:match.start()]}{footer}\n\n{body[match.start():]}"


def append_plain_footer(body: str, footer: str) -> str:
    """Append the footer at the end of the body."""
    return f"{body}{footer}\n\n"


PLAIN_TIERS: list[tuple[str, Tier]] = [
    ("delimiter", replace_plain_delimiter),
    ("reply_header", insert_before_reply_header),
]


def insert_plain_footer(body: str, footer: str) -> Splice:
    """Insert a plain text footer, first matching tier wins.

    Args:
        body: Decoded text/plain body with ``\\n`` line endings.
        footer: Plain footer text.

    Returns:
        Splice with the new body and the tier that placed the footer.
    """
    for name, tier in PLAIN_TIERS:
        result = tier(body, footer)
        if result is not None:
            return Splice(result, True, name)

    return Splice(append_plain_footer(body, footer), True, "append")


# HTML tiers


def _fragment(markup: str) -> list:
    """Parse a markup fragment into nodes that can be moved into a tree."""
    return list(BeautifulSoup(markup, HTML_PARSER).contents)


def replace_html_delimiter(markup: str, footer: str) -> str | None:
    """Replace a ``--`` line, optionally joined by ``<br>`` tags, with the footer."""
    if not _HTML_DELIMITER_RE.search(markup):
        return None
    return _HTML_DELIMITER_RE.sub(
        lambda m: f"{m.group(1)}{footer}{m.group(2)}", markup, count=1
    )


def insert_before_blockquote(markup: str, footer: str) -> str | None:
    """Put the footer at the top of the block that precedes the quoted reply.

    The first ``<blockquote>`` is taken as the quoted original. The nearest
    preceding ``div`` or ``p`` sibling gets the footer as leading content.
    Without one, the footer goes before the reply header line inside the
    blockquote's parent, unless that content starts with the header.
    """
    soup = BeautifulSoup(markup, HTML_PARSER)
    blockquote = soup.find("blockquote")
    if blockquote is None:
        return None

    sibling = blockquote.find_previous_sibling(["div", "p"])
    if sibling is not None:
        for node in reversed(_fragment(footer)):
            sibling.insert(0, node)
        return soup.decode(formatter=HTML_FORMATTER)

    parent = blockquote.parent
    content = parent.decode_contents(formatter=HTML_FORMATTER)
    if _STARTS_WITH_HTML_REPLY_RE.match(content):
        return None

    match = _REPLY_START_RE.search(content)
    if not match:
        return None

    parent.clear()
    for node in _fragment(f"{content[:match.start()]}{footer}{content[match.start():]}"):
        parent.append(node)
    return soup.decode(formatter=HTML_FORMATTER)


def append_html_footer(markup: str, footer: str) -> str:
    """Append the footer to ``<body>``, else ``<html>``, else the raw markup."""
    soup = BeautifulSoup(markup, HTML_PARSER)

    container = soup.find("body")
    if container is None:
        container = soup.find("html")
    if container is None:
        return f"{markup}{footer}"

    for node in _fragment(footer):
        container.append(node)
    return soup.decode(formatter=HTML_FORMATTER)


HTML_TIERS: list[tuple[str, Tier]] = [
    ("delimiter", replace_html_delimiter),
    ("blockquote", insert_before_blockquote),
]


def insert_html_footer(markup: str, footer: str) -> Splice:
    """Insert an HTML footer, first matching tier wins.

    Args:
        markup: Decoded text/html body.
        footer: Footer markup.

    Returns:
        Splice with the new markup and the tier that placed the footer.
    """
    for name, tier in HTML_TIERS:
        result = tier(markup, footer)
        if result is not None:
            return Splice(result, True, name)

    return Splice(append_html_footer(markup, footer), True, "append")
