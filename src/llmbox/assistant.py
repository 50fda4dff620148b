"""The direct-assistant reply path.

One inbound question in, one threaded answer out: build the generation
request, generate, format the reply with threading headers, send.
"""

from __future__ import annotations

import structlog

from llmbox.delivery.sendgrid import EmailSender
from llmbox.domain.errors import ThreadingDegradedError
from llmbox.domain.models import IncomingEmail, OutgoingEmail
from llmbox.email.threading import ThreadFormatter
from llmbox.llm.generator import ContentGenerator, build_reply_request

logger = structlog.get_logger()


class AssistantResponder:
    """Answer emails sent to the assistant address.

    Args:
        generator: Produces the answer text.
        sender: Delivers the reply.
        formatter: Builds the threaded reply email.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        sender: EmailSender,
        formatter: ThreadFormatter,
    ) -> None:
        self._generator = generator
        self._sender = sender
        self._formatter = formatter

    def respond(self, incoming: IncomingEmail) -> OutgoingEmail:
        """Generate and send the reply to *incoming*.

        An email without a Message-ID is still answered, just without
        threading headers.

        Returns:
            The email that was sent.

        Raises:
            GenerationError: If the answer could not be generated.
            DeliveryError: If the reply could not be sent.
        """
        log = logger.bind(from_email=incoming.from_email, subject=incoming.subject)
        log.info("assistant_reply_started")

        generated = self._generator.generate(build_reply_request(incoming))

        try:
            reply = self._formatter.format_reply(incoming, generated.content)
        except ThreadingDegradedError:
            reply = self._formatter.format_unthreaded_reply(incoming, generated.content)

        self._sender.send(reply)

        log.info(
            "assistant_reply_sent",
            to=reply.to_email,
            threaded=reply.in_reply_to is not None,
            token_count=generated.token_count,
        )
        return reply
