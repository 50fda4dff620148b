"""Personifeed: signup, reply feedback, and the nightly newsletter batch."""

from llmbox.personifeed.batch import BatchDispatcher
from llmbox.personifeed.reply import FeedbackProcessor, merge_feedback
from llmbox.personifeed.signup import sign_up

__all__ = [
    "BatchDispatcher",
    "FeedbackProcessor",
    "merge_feedback",
    "sign_up",
]
