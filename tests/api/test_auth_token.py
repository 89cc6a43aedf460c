from __future__ import annotations

from fastapi.testclient import TestClient

from aiquiz.main import create_app
from aiquiz.services.identity import parse_user_token
from tests.api.quiz_api_fakes import AUTH_SECRET, INTERNAL_TOKEN, build_test_runtime


def test_issue_token_requires_internal_token() -> None:
    with TestClient(create_app(runtime=build_test_runtime())) as client:
        missing = client.post("/auth/token", json={"user_id": 42})
        wrong = client.post("/auth/token", json={"user_id": 42}, headers={"X-Internal-Token": "nope"})

    assert missing.status_code == 403
    assert missing.json()["detail"] == {"code": "E_FORBIDDEN"}
    assert wrong.status_code == 403


def test_issue_token_returns_signed_bearer_token() -> None:
    with TestClient(create_app(runtime=build_test_runtime())) as client:
        response = client.post(
            "/auth/token",
            json={"user_id": 42},
            headers={"X-Internal-Token": INTERNAL_TOKEN},
        )

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_type"] == "bearer"
    assert parse_user_token(payload["access_token"], secret=AUTH_SECRET) == 42


def test_issue_token_rejects_non_positive_user_id() -> None:
    with TestClient(create_app(runtime=build_test_runtime())) as client:
        response = client.post(
            "/auth/token",
            json={"user_id": 0},
            headers={"X-Internal-Token": INTERNAL_TOKEN},
        )

    assert response.status_code == 422
