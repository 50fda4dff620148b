"""The persistence boundary consumed by the email pipeline.

Any engine works as long as it provides atomic per-row operations and
reports a missing row as ``RecordNotFoundError``, distinct from other
``StoreError`` failures.
"""

from __future__ import annotations

from typing import Protocol

from llmbox.domain.models import Customization, Newsletter, User
from llmbox.domain.types import CustomizationType


class PersonalizationStore(Protocol):
    """Row-level access to users, customizations and newsletters."""

    # Users
    def create_user(self, email: str, prompt: str) -> User: ...

    def get_user(self, user_id: str) -> User: ...

    def get_user_by_email(self, email: str) -> User: ...

    def update_user_prompt(self, user_id: str, prompt: str) -> User: ...

    def set_user_active(self, user_id: str, is_active: bool) -> User: ...

    def delete_user(self, user_id: str) -> None: ...

    def list_active_users(self) -> list[User]: ...

    # Customizations
    def append_customization(
        self,
        user_id: str,
        content: str,
        customization_type: CustomizationType = CustomizationType.REPLY,
    ) -> Customization: ...

    def list_customizations(self, user_id: str) -> list[Customization]: ...

    # Newsletters
    def create_newsletter(self, user_id: str, content: str) -> Newsletter: ...

    def get_newsletter(self, newsletter_id: str) -> Newsletter: ...

    def delete_newsletter(self, newsletter_id: str) -> None: ...

    def list_newsletters(self, user_id: str) -> list[Newsletter]: ...
