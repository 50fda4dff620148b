"""Reply-text cleanup for personifeed feedback.

Email clients quote the whole prior thread by convention.  Storing that
would feed the assistant's own newsletter back into the user's profile, so
only the newly written text is kept:

- ``mail-parser-reply`` cuts the body at the first reply header it
  recognizes (``On ... wrote:`` attributions, Outlook ``From:``/``Sent:``
  blocks, ``-----Original Message-----`` separators);
- quoted lines (``>`` markers) are dropped, together with an
  ``On ... wrote:`` attribution directly introducing them;
- everything from a signature separator (``--``, ``___``) or a mobile
  footer ("Sent from my iPhone") onwards is dropped;
- runs of blank lines collapse and surrounding whitespace is trimmed.

``normalize_feedback`` is idempotent, and returns ``None`` when nothing is
left so callers can treat the reply as a no-op rather than an error.
"""

from __future__ import annotations

import re

from mailparser_reply import EmailReplyParser  # type: ignore[import-untyped]

_REPLY_LANGUAGES = ["en"]

_QUOTE_LINE = re.compile(r"^\s*>")
_SIGNATURE_SEPARATOR = re.compile(r"^\s*(?:-{2,}|_{3,})\s*$")
_MOBILE_FOOTER = re.compile(r"^\s*sent from my \w+(?: \w+)*\s*$", re.IGNORECASE)
_ATTRIBUTION = re.compile(r"^\s*On\s.+\bwrote:\s*$")
_ATTRIBUTION_START = re.compile(r"^\s*On\s.+")
_ATTRIBUTION_END = re.compile(r"^\s*.*\bwrote:\s*$")


def _is_quote(line: str) -> bool:
    return bool(_QUOTE_LINE.match(line))


def _is_signature_start(line: str) -> bool:
    return bool(_SIGNATURE_SEPARATOR.match(line) or _MOBILE_FOOTER.match(line))


def _next_content_index(lines: list[str], start: int) -> int | None:
    """Index of the first non-blank line at or after *start*."""
    for index in range(start, len(lines)):
        if lines[index].strip():
            return index
    return None


def _attribution_span(lines: list[str], index: int) -> int:
    """Number of lines forming an attribution at *index* (0 if none).

    Only counts when the attribution is followed by quoted text; a lone
    "On Monday I wrote:" in the user's own words is kept.
    """
    line = lines[index]
    if _ATTRIBUTION.match(line):
        span = 1
    elif (
        _ATTRIBUTION_START.match(line)
        and index + 1 < len(lines)
        and _ATTRIBUTION_END.match(lines[index + 1])
        and not _is_quote(lines[index + 1])
    ):
        # Some clients wrap a long attribution over two lines.
        span = 2
    else:
        return 0

    following = _next_content_index(lines, index + span)
    if following is not None and _is_quote(lines[following]):
        return span
    return 0


def _collapse_blank_runs(lines: list[str]) -> list[str]:
    collapsed: list[str] = []
    for line in lines:
        if not line.strip():
            if collapsed and not collapsed[-1]:
                continue
            collapsed.append("")
        else:
            collapsed.append(line.rstrip())
    return collapsed


def extract_latest_reply(text: str) -> str:
    """Return the part of *text* above the first reply header.

    A body that is nothing but quoted history yields whatever the parser
    leaves, possibly an empty string; the full body is never returned as a
    substitute.
    """
    parsed = EmailReplyParser(languages=_REPLY_LANGUAGES).parse_reply(text=text)
    return parsed or ""


def strip_quoted_reply(text: str) -> str:
    """Remove quoted blocks, attributions and signatures from *text*."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    kept: list[str] = []

    index = 0
    while index < len(lines):
        line = lines[index]
        if _is_signature_start(line):
            break
        if _is_quote(line):
            index += 1
            continue
        span = _attribution_span(lines, index)
        if span:
            index += span
            continue
        kept.append(line)
        index += 1

    return "\n".join(_collapse_blank_runs(kept)).strip()


def normalize_feedback(text: str | None) -> str | None:
    """Recover the user's own feedback from a raw reply body.

    Args:
        text: The raw ``text`` part of the reply email.

    Returns:
        The cleaned feedback, or ``None`` when nothing remains after cleaning.
    """
    if not text or not text.strip():
        return None
    latest = extract_latest_reply(text.replace("\r\n", "\n").replace("\r", "\n"))
    cleaned = strip_quoted_reply(latest)
    return cleaned or None
