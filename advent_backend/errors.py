"""
Error types shared by the backend clients.
"""

from __future__ import annotations


class BackendError(Exception):
    """Raised when a hosted backend (KV, database, storage, auth, push) fails."""

    def __init__(self, service: str, message: str):
        super().__init__(message)
        self.service = service
        self.message = message

    def __str__(self) -> str:
        return self.message
