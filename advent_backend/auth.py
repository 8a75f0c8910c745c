"""
Hosted auth (Supabase GoTrue) client and an in-memory test double.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

from advent_backend.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None


class AuthClient(Protocol):
    def check(self) -> None:
        ...

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        ...


@dataclass
class InMemoryAuthClient:
    """Maps bearer tokens to users; unknown tokens are rejected."""

    tokens: dict[str, AuthUser] = field(default_factory=dict)

    def check(self) -> None:
        return None

    def add_user(self, access_token: str, user: AuthUser) -> None:
        self.tokens[access_token] = user

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        return self.tokens.get(access_token)

    def reset(self) -> None:
        self.tokens.clear()


@dataclass
class SupabaseAuthClient:
    url: str
    service_role_key: str
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        self.url = self.url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({"apikey": self.service_role_key})

    def check(self) -> None:
        try:
            response = self.session.get(
                f"{self.url}/auth/v1/health", timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise BackendError("auth", str(exc)) from exc

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            response = self.session.get(
                f"{self.url}/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError("auth", str(exc)) from exc

        if response.status_code in (401, 403):
            logger.info("Rejected access token (status %s)", response.status_code)
            return None
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise BackendError("auth", str(exc)) from exc

        payload = response.json()
        return AuthUser(id=payload["id"], email=payload.get("email"))
