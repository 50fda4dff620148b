"""HTTP tests for the newsletter batch trigger."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from llmbox.api.batch import verify_bearer_token
from llmbox.store.sqlite import SQLitePersonalizationStore

BATCH_SECRET = "s3cret-token"
AUTH = {"Authorization": f"Bearer {BATCH_SECRET}"}


class TestBatchEndpoint:
    def test_zero_users(self, client: TestClient, mock_generator: MagicMock) -> None:
        response = client.post("/personifeed/batch", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["stats"]["totalUsers"] == 0
        assert body["stats"]["successCount"] == 0
        assert body["stats"]["failureCount"] == 0
        assert "durationMs" in body["stats"]
        mock_generator.generate.assert_not_called()

    def test_runs_for_active_users(
        self,
        client: TestClient,
        store: SQLitePersonalizationStore,
        mock_sender: MagicMock,
    ) -> None:
        for i in range(3):
            store.create_user(f"u{i}@example.com", "AI news")

        response = client.post("/personifeed/batch", headers=AUTH)

        assert response.json()["stats"] == {
            "totalUsers": 3,
            "successCount": 3,
            "failureCount": 0,
            "durationMs": response.json()["stats"]["durationMs"],
        }
        assert mock_sender.send.call_count == 3

    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer wrong"}, {"Authorization": BATCH_SECRET}],
    )
    def test_unauthorized(self, client: TestClient, headers: dict[str, str]) -> None:
        response = client.post("/personifeed/batch", headers=headers)
        assert response.status_code == 401

    def test_secret_not_configured_is_503(
        self, client: TestClient, services: dict[str, Any]
    ) -> None:
        client.app.state.settings = services["_settings"].model_copy(
            update={"batch_trigger_secret": SecretStr("")}
        )

        response = client.post("/personifeed/batch", headers=AUTH)

        assert response.status_code == 503

    def test_dispatcher_not_configured_is_503(
        self, client: TestClient, services: dict[str, Any]
    ) -> None:
        services["dispatcher"] = None

        response = client.post("/personifeed/batch", headers=AUTH)

        assert response.status_code == 503


class TestVerifyBearerToken:
    def test_accepts_matching_token(self) -> None:
        assert verify_bearer_token("Bearer abc", "abc")
        assert verify_bearer_token("bearer abc", "abc")

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "abc"])
    def test_rejects(self, header: str | None) -> None:
        assert not verify_bearer_token(header, "abc")
