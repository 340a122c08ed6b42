"""Client used by presenting terminals to fetch their scope's secret.

The secret is cached for the session so the display loop does not hit
the backend on every step. The cache holds no authority: ``refresh()``
replaces it and ``sign_out()`` drops it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import httpx

from attendcode.config import settings
from attendcode.errors import (
    AttendCodeError,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    SecretFetchTimeout,
)

logger = logging.getLogger(__name__)

SECRET_PATH = "codeAuthentication/secrettotp"
SECRET_FIELD = "secretTOTP"
CACHE_KEY = "key"
RETRY_BACKOFF_S = 1.0


class SessionCache:
    """Ephemeral per-session storage, gone when the process or session ends."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class SecretClient:
    """Fetches the shared secret with an identity token."""

    def __init__(
        self,
        token_source: Callable[[], str | None],
        base_url: str | None = None,
        timeout: float | None = None,
        cache: SessionCache | None = None,
        http: httpx.Client | None = None,
        retry_backoff_s: float = RETRY_BACKOFF_S,
    ) -> None:
        self.token_source = token_source
        self.base_url = (base_url or settings.backend_base_url).rstrip("/") + "/"
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self.cache = cache or SessionCache()
        self._http = http
        self.retry_backoff_s = retry_backoff_s

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _request(self, token: str) -> httpx.Response:
        url = self.base_url + SECRET_PATH
        if self._http is not None:
            return self._http.get(url, headers=self._headers(token), timeout=self.timeout)
        return httpx.get(url, headers=self._headers(token), timeout=self.timeout)

    def _fetch_once(self, token: str) -> str:
        try:
            resp = self._request(token)
        except httpx.TimeoutException as e:
            raise SecretFetchTimeout(f"Secret fetch timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Secret fetch failed: {e}") from e

        if resp.status_code == 401:
            raise AuthenticationError(_detail(resp, "Sign in again to fetch the code secret"))
        if resp.status_code == 403:
            raise AuthorizationError(_detail(resp, "Not allowed to display attendance codes"))
        if resp.status_code >= 500:
            raise NetworkError(f"Backend error: HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise AttendCodeError(f"Secret fetch rejected: HTTP {resp.status_code}")

        try:
            value = resp.json()[SECRET_FIELD]
        except (ValueError, KeyError, TypeError) as e:
            raise NetworkError(f"Malformed secret response: missing '{SECRET_FIELD}'") from e
        if not isinstance(value, str) or not value:
            raise NetworkError(f"Malformed secret response: empty '{SECRET_FIELD}'")
        return value

    def fetch_secret(self) -> str:
        """Fetch from the backend, retrying once on transient failures."""
        token = self.token_source()
        if not token:
            raise AuthenticationError("For this action you have to be signed in")

        try:
            value = self._fetch_once(token)
        except NetworkError as e:
            logger.warning("Secret fetch failed (%s), retrying once", e)
            time.sleep(self.retry_backoff_s)
            value = self._fetch_once(token)

        self.cache.set(CACHE_KEY, value)
        logger.info("Fetched code secret from %s", self.base_url)
        return value

    def get_secret(self) -> str:
        """Cached secret, fetching it on first use."""
        cached = self.cache.get(CACHE_KEY)
        if cached:
            return cached
        return self.fetch_secret()

    def refresh(self) -> str:
        return self.fetch_secret()

    def sign_out(self) -> None:
        self.cache.remove(CACHE_KEY)


def _detail(resp: httpx.Response, fallback: str) -> str:
    try:
        detail = resp.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return detail if isinstance(detail, str) and detail else fallback
