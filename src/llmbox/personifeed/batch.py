"""Nightly newsletter batch run.

``BatchDispatcher.run()`` enumerates active users once, then runs each
user's generate -> persist -> send sequence with bounded parallelism.  A
failure anywhere in one user's sequence marks that user failed and never
aborts the run.  Synchronous collaborators (Anthropic, SendGrid, SQLite)
are called through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import date

import structlog

from llmbox.delivery.sendgrid import EmailSender
from llmbox.domain.errors import LlmboxError, RecordNotFoundError
from llmbox.domain.models import BatchStats, User, UserRunResult
from llmbox.email.threading import ThreadFormatter
from llmbox.llm.generator import ContentGenerator, build_newsletter_request
from llmbox.observability.metrics import BATCH_DURATION, NEWSLETTERS_FAILED, NEWSLETTERS_SENT
from llmbox.store.base import PersonalizationStore

logger = structlog.get_logger()

DEFAULT_CONCURRENCY = 10


class BatchDispatcher:
    """Generate and send one newsletter per active user.

    Args:
        store: Source of users and customizations; newsletters are recorded here.
        generator: Produces newsletter content.
        sender: Delivers the newsletter email.
        formatter: Builds the newsletter email.
        concurrency: Maximum number of users processed at the same time.
        today: Returns the run date shown in subjects and prompts.
    """

    def __init__(
        self,
        store: PersonalizationStore,
        generator: ContentGenerator,
        sender: EmailSender,
        formatter: ThreadFormatter,
        concurrency: int = DEFAULT_CONCURRENCY,
        today: Callable[[], date] = date.today,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self._store = store
        self._generator = generator
        self._sender = sender
        self._formatter = formatter
        self._concurrency = concurrency
        self._today = today

    async def run(self) -> BatchStats:
        """Run one batch over all users active at start.

        Returns:
            Aggregate counts; ``success_count + failure_count == total_users``.
        """
        started = time.monotonic()
        run_date = self._today()

        users = await asyncio.to_thread(self._store.list_active_users)
        logger.info("batch_started", total_users=len(users), concurrency=self._concurrency)

        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(user: User) -> UserRunResult:
            async with semaphore:
                return await self._process_user(user, run_date)

        results = await asyncio.gather(*(bounded(user) for user in users))

        elapsed = time.monotonic() - started
        stats = BatchStats.from_results(list(results), duration_ms=int(elapsed * 1000))
        BATCH_DURATION.observe(elapsed)

        logger.info(
            "batch_completed",
            total_users=stats.total_users,
            success_count=stats.success_count,
            failure_count=stats.failure_count,
            duration_ms=stats.duration_ms,
        )
        return stats

    async def _process_user(self, user: User, run_date: date) -> UserRunResult:
        log = logger.bind(user_id=user.id)
        newsletter_id: str | None = None

        try:
            customizations = await asyncio.to_thread(self._store.list_customizations, user.id)
            if not user.prompt.strip() and not customizations:
                raise LlmboxError("User has no prompt and no customizations")

            request = build_newsletter_request(user, customizations, run_date)
            generated = await asyncio.to_thread(self._generator.generate, request)

            newsletter = await asyncio.to_thread(
                self._store.create_newsletter, user.id, generated.content
            )
            newsletter_id = newsletter.id

            email = self._formatter.format_newsletter(user, generated.content, run_date)
            await asyncio.to_thread(self._sender.send, email)
        except Exception as exc:
            if newsletter_id is not None:
                await self._discard_newsletter(newsletter_id, user.id)
            NEWSLETTERS_FAILED.inc()
            log.error("user_processing_failed", error=str(exc), error_type=type(exc).__name__)
            return UserRunResult(user_id=user.id, succeeded=False, error=str(exc))

        NEWSLETTERS_SENT.inc()
        log.info("newsletter_sent", newsletter_id=newsletter_id)
        return UserRunResult(user_id=user.id, succeeded=True, newsletter_id=newsletter_id)

    async def _discard_newsletter(self, newsletter_id: str, user_id: str) -> None:
        """Remove the row of a newsletter that was never delivered."""
        try:
            await asyncio.to_thread(self._store.delete_newsletter, newsletter_id)
        except RecordNotFoundError:
            pass
        except Exception as exc:
            logger.error(
                "newsletter_cleanup_failed",
                user_id=user_id,
                newsletter_id=newsletter_id,
                error=str(exc),
            )
