"""
Exceptions raised by the provider clients.
"""

from __future__ import annotations

from typing import Optional


class BackendError(Exception):
    """A query against the hosted backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(BackendError):
    """Sign-in or token validation was rejected."""
