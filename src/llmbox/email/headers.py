"""Threading header extraction from webhook header blobs.

The provider delivers headers as a JSON object, as raw ``Name: value``
lines, or not at all.  The blob is decoded once into a small tagged union
(``JsonHeaderBlob`` / ``RawHeaderBlob`` / ``EmptyHeaderBlob``); everything
downstream works on the normalized ``ThreadHeaders`` shape only.

Message-ID tokens are kept verbatim (angle brackets included).  Brackets
are stripped only when two ids are compared.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from email.parser import HeaderParser
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from llmbox.domain.models import ThreadHeaders

logger = structlog.get_logger()

MESSAGE_ID = "message-id"
IN_REPLY_TO = "in-reply-to"
REFERENCES = "references"

_BRACKETED_ID = re.compile(r"<[^<>\s]+>")
_LIST_SEPARATOR = re.compile(r"[\s,]+")


class JsonHeaderBlob(BaseModel):
    """Headers delivered as a JSON object; keys lowercased on decode."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["json"] = "json"
    headers: dict[str, str] = Field(default_factory=dict)


class RawHeaderBlob(BaseModel):
    """Headers delivered as raw RFC 5322 header lines."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["raw"] = "raw"
    text: str


class EmptyHeaderBlob(BaseModel):
    """No headers, or nothing that could be decoded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"


HeaderBlob = JsonHeaderBlob | RawHeaderBlob | EmptyHeaderBlob


def normalize_message_id(value: str) -> str:
    """Strip whitespace and surrounding angle brackets for comparison."""
    return value.strip().removeprefix("<").removesuffix(">").strip()


def same_message_id(a: str | None, b: str | None) -> bool:
    """Compare two Message-IDs ignoring surrounding angle brackets."""
    if not a or not b:
        return False
    return normalize_message_id(a) == normalize_message_id(b)


def _flatten_json_value(value: Any) -> str:
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def decode_header_blob(raw: Any) -> HeaderBlob:
    """Classify a raw header payload into one of the three supported shapes.

    Args:
        raw: A mapping, a JSON-encoded object, raw header lines, or ``None``.

    Returns:
        The decoded blob.  Never raises.
    """
    if raw is None:
        return EmptyHeaderBlob()

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, Mapping):
        return JsonHeaderBlob(
            headers={
                str(k).strip().lower(): _flatten_json_value(v)
                for k, v in raw.items()
                if v is not None
            }
        )

    if not isinstance(raw, str) or not raw.strip():
        return EmptyHeaderBlob()

    text = raw.strip()
    if text.startswith("{"):
        try:
            parsed = json.loads(text)
        except ValueError:
            logger.debug("header_blob_not_json", length=len(text))
        else:
            if isinstance(parsed, Mapping):
                return decode_header_blob(parsed)

    return RawHeaderBlob(text=text)


def _header_values(blob: HeaderBlob) -> dict[str, str]:
    """Return the three threading headers (lowercased names) present in *blob*."""
    if isinstance(blob, JsonHeaderBlob):
        return {
            name: blob.headers[name]
            for name in (MESSAGE_ID, IN_REPLY_TO, REFERENCES)
            if name in blob.headers
        }

    if isinstance(blob, RawHeaderBlob):
        message = HeaderParser().parsestr(blob.text.replace("\r\n", "\n"))
        values: dict[str, str] = {}
        for name in (MESSAGE_ID, IN_REPLY_TO, REFERENCES):
            value = message.get(name)
            if value is not None:
                values[name] = str(value)
        return values

    return {}


def _single_id(value: str | None) -> str | None:
    """Pick the Message-ID token out of a header value, verbatim."""
    if not value or not value.strip():
        return None
    match = _BRACKETED_ID.search(value)
    if match:
        return match.group(0)
    return value.split()[0]


def split_references(value: str | None) -> list[str]:
    """Split a References header into its ordered, verbatim tokens."""
    if not value:
        return []
    return [token for token in _LIST_SEPARATOR.split(value) if token]


def parse_thread_headers(raw: Any) -> ThreadHeaders:
    """Extract Message-ID, In-Reply-To and References from a header blob.

    Header absence is a normal case (some mail clients omit them), so an
    empty or unparseable blob yields an all-empty result instead of an error.

    Args:
        raw: A mapping, a JSON-encoded object, raw header lines, or ``None``.

    Returns:
        The normalized ``ThreadHeaders``.
    """
    blob = decode_header_blob(raw)
    try:
        values = _header_values(blob)
    except Exception:
        logger.warning("header_blob_unparseable", kind=blob.kind, exc_info=True)
        return ThreadHeaders()

    return ThreadHeaders(
        message_id=_single_id(values.get(MESSAGE_ID)),
        in_reply_to=_single_id(values.get(IN_REPLY_TO)),
        references=split_references(values.get(REFERENCES)),
    )
