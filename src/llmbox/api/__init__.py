"""HTTP surface: inbound email webhook, signup and batch trigger routers."""

from llmbox.api.batch import router as batch_router
from llmbox.api.signup import router as signup_router
from llmbox.api.webhook import router as webhook_router

__all__ = [
    "batch_router",
    "signup_router",
    "webhook_router",
]
