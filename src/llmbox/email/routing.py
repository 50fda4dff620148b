"""Inbound address classification and per-user reply address encoding.

``AddressRouter`` only decodes syntax: a ``reply+<token>`` local part
yields the token verbatim.  Whether the token names an existing user is
decided later by the personalization store, so malformed addresses and
well-formed-but-unknown tokens surface as different failures.
"""

from __future__ import annotations

import re
from email.utils import getaddresses
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from llmbox.domain.types import RouteKind

_ANGLE_ADDRESS = re.compile(r"<([^<>]+)>")


class RoutingConfig(BaseModel):
    """Addresses and domains this deployment answers for.

    Attributes:
        assistant_addresses: Full addresses routed to the direct assistant.
        service_domains: Domains on which ``<reply_prefix>+<token>`` addresses
            are decoded.  The first entry is used when encoding.
        reply_prefix: Local-part prefix of per-user reply addresses.
    """

    model_config = ConfigDict(frozen=True)

    assistant_addresses: tuple[str, ...] = ()
    service_domains: tuple[str, ...] = Field(min_length=1)
    reply_prefix: str = "reply"

    @field_validator("assistant_addresses", "service_domains", mode="after")
    @classmethod
    def lowercase_entries(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Normalize entries for case-insensitive comparison."""
        return tuple(entry.strip().lower() for entry in v if entry.strip())

    @field_validator("service_domains", mode="after")
    @classmethod
    def require_service_domain(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """At least one domain must survive normalization."""
        if not v:
            raise ValueError("at least one non-blank service domain is required")
        return v

    @property
    def reply_domain(self) -> str:
        """Domain used when building reply addresses."""
        return self.service_domains[0]


class DirectAssistantRoute(BaseModel):
    """The email is a question for the direct assistant."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[RouteKind.DIRECT_ASSISTANT] = RouteKind.DIRECT_ASSISTANT
    address: str


class PersonifeedReplyRoute(BaseModel):
    """The email replies to a personifeed newsletter of ``user_id``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[RouteKind.PERSONIFEED_REPLY] = RouteKind.PERSONIFEED_REPLY
    address: str
    user_id: str


class UnrecognizedRoute(BaseModel):
    """No recipient matched a recognized service address."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[RouteKind.UNRECOGNIZED] = RouteKind.UNRECOGNIZED


Route = DirectAssistantRoute | PersonifeedReplyRoute | UnrecognizedRoute


def recipient_addresses(to: str) -> list[str]:
    """Split a recipient header into bare addresses, in order.

    Falls back to a plain comma split when the stdlib parser rejects the
    header, so unusual but deliverable local parts are still seen.
    """
    addresses = [addr.strip() for _, addr in getaddresses([to or ""]) if addr.strip()]
    if addresses:
        return addresses

    fallback: list[str] = []
    for part in (to or "").split(","):
        match = _ANGLE_ADDRESS.search(part)
        candidate = match.group(1) if match else part
        if candidate.strip():
            fallback.append(candidate.strip())
    return fallback


class AddressRouter:
    """Classify inbound ``to`` addresses against a ``RoutingConfig``.

    Args:
        config: The recognized assistant addresses, domains and reply prefix.
    """

    def __init__(self, config: RoutingConfig) -> None:
        self._config = config

    @property
    def config(self) -> RoutingConfig:
        return self._config

    def encode_reply_address(self, user_id: str, domain: str | None = None) -> str:
        """Build the per-user reply address ``<prefix>+<user_id>@<domain>``.

        Args:
            user_id: Identifier of the user; must be non-empty.
            domain: Domain override; defaults to the first service domain.

        Returns:
            The reply address.

        Raises:
            ValueError: If *user_id* is empty or contains ``@``.
        """
        if not user_id or "@" in user_id:
            raise ValueError(f"Cannot encode user id {user_id!r} into a reply address")
        return f"{self._config.reply_prefix}+{user_id}@{domain or self._config.reply_domain}"

    def _classify_address(self, address: str) -> Route:
        local, sep, domain = address.rpartition("@")
        if not sep or not local:
            return UnrecognizedRoute()

        if address.lower() in self._config.assistant_addresses:
            return DirectAssistantRoute(address=address)

        if domain.lower() not in self._config.service_domains:
            return UnrecognizedRoute()

        prefix, plus, token = local.partition("+")
        if plus and prefix.lower() == self._config.reply_prefix.lower() and token:
            return PersonifeedReplyRoute(address=address, user_id=token)

        return UnrecognizedRoute()

    def classify(self, to: str) -> Route:
        """Classify the ``to`` header of an inbound email.

        The header may hold display names and several comma-separated
        recipients; the first recognized recipient wins.

        Args:
            to: The raw ``to`` value from the webhook.

        Returns:
            The route for the email.
        """
        for address in recipient_addresses(to):
            route = self._classify_address(address)
            if not isinstance(route, UnrecognizedRoute):
                return route
        return UnrecognizedRoute()
