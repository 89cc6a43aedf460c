from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from fastapi import Request

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True, slots=True)
class CurrentUser:
    user_id: int


def _sign_user_id(*, user_id: int, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), str(user_id).encode("utf-8"), hashlib.sha256).hexdigest()


def build_user_token(*, user_id: int, secret: str) -> str:
    if user_id <= 0:
        raise ValueError("user_id must be positive")
    if not secret:
        raise ValueError("secret must not be empty")
    return f"{user_id}.{_sign_user_id(user_id=user_id, secret=secret)}"


def parse_user_token(token: str | None, *, secret: str) -> int | None:
    if not token or not secret:
        return None

    raw_user_id, separator, signature = token.strip().partition(".")
    if not separator or not raw_user_id.isdigit():
        return None

    user_id = int(raw_user_id)
    if user_id <= 0:
        return None
    if not secrets.compare_digest(_sign_user_id(user_id=user_id, secret=secret), signature):
        return None
    return user_id


def extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


class TokenIdentityProvider:
    """Resolves the signed-in user from a signed bearer token; anonymous otherwise."""

    def __init__(self, *, secret: str) -> None:
        self._secret = secret

    def current_user(self, request: Request) -> CurrentUser | None:
        user_id = parse_user_token(extract_bearer_token(request), secret=self._secret)
        if user_id is None:
            return None
        return CurrentUser(user_id=user_id)

    def issue_token(self, *, user_id: int) -> str:
        return build_user_token(user_id=user_id, secret=self._secret)


def is_valid_internal_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)
