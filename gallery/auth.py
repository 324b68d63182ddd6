"""
Authentication against the hosted provider, plus the FastAPI gate that
resolves the current user from a session cookie or bearer token.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gallery.config import get_settings
from gallery.dependencies import get_auth_client
from gallery.errors import AuthError, BackendError

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None


@dataclass
class AuthSession:
    access_token: str
    user: AuthUser


class AuthClient(Protocol):
    """Operations the app needs from the identity provider."""

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        ...

    def sign_out(self, access_token: str) -> None:
        ...


@dataclass
class InMemoryAuthClient:
    """Test double for the identity provider."""

    passwords: Dict[str, str] = field(default_factory=dict)
    users: Dict[str, AuthUser] = field(default_factory=dict)
    sessions: Dict[str, AuthUser] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def register(self, email: str, password: str) -> AuthUser:
        user = AuthUser(id=uuid.uuid4().hex, email=email)
        self.users[email] = user
        self.passwords[email] = password
        return user

    def reset(self) -> None:
        with self._lock:
            self.passwords.clear()
            self.users.clear()
            self.sessions.clear()

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if email not in self.users or self.passwords.get(email) != password:
            raise AuthError("Invalid login credentials", status_code=400)
        token = uuid.uuid4().hex
        with self._lock:
            self.sessions[token] = self.users[email]
        return AuthSession(access_token=token, user=self.users[email])

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        return self.sessions.get(access_token)

    def sign_out(self, access_token: str) -> None:
        with self._lock:
            self.sessions.pop(access_token, None)


class RestAuthClient:
    """GoTrue REST client for the hosted provider."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not base_url or not anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def _headers(self, access_token: Optional[str] = None) -> dict:
        headers = {"apikey": self.anon_key, "Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    @staticmethod
    def _to_user(payload: dict) -> AuthUser:
        return AuthUser(id=str(payload["id"]), email=payload.get("email"))

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        try:
            response = self.http.post(
                f"{self.base_url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(f"Sign-in request failed: {exc}") from exc
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            detail = None
            if isinstance(payload, dict):
                detail = (
                    payload.get("error_description")
                    or payload.get("msg")
                    or payload.get("message")
                )
            raise AuthError(
                detail or "Invalid login credentials",
                status_code=response.status_code,
            )
        payload = response.json()
        return AuthSession(
            access_token=payload["access_token"], user=self._to_user(payload["user"])
        )

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            response = self.http.get(
                f"{self.base_url}/auth/v1/user",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(f"User lookup failed: {exc}") from exc
        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            raise BackendError(
                f"User lookup failed: {response.text}",
                status_code=response.status_code,
            )
        return self._to_user(response.json())

    def sign_out(self, access_token: str) -> None:
        try:
            response = self.http.post(
                f"{self.base_url}/auth/v1/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(f"Sign-out request failed: {exc}") from exc
        # An already-expired token cannot be revoked; the cookie still goes.
        if response.status_code >= 400 and response.status_code not in (401, 403):
            raise BackendError(
                f"Sign-out failed: {response.text}", status_code=response.status_code
            )


@dataclass
class CurrentUser:
    """The signed-in user together with the token used to authenticate."""

    user: AuthUser
    access_token: str

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def email(self) -> Optional[str]:
        return self.user.email


def extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthClient = Depends(get_auth_client),
) -> Optional[CurrentUser]:
    """
    Resolve the user from the bearer header or session cookie.

    Returns None when there is no token or the provider does not recognise
    it. A provider outage raises BackendError, which the app reports as 502.
    """
    token = extract_token(request, credentials)
    if not token:
        return None
    user = auth.get_user(token)
    if not user:
        return None
    return CurrentUser(user=user, access_token=token)


def require_user(
    current: Optional[CurrentUser] = Depends(get_current_user),
) -> CurrentUser:
    """Return the current user or raise 401."""
    if not current:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current
