"""HTTP client for the CodeSonar hub.

The client owns a single ``httpx.Client`` whose cookie jar carries the hub
session: after :meth:`HubClient.authenticate` succeeds, every later
request to the same host is sent with the session cookie.  Requests are
serialised through a lock so that one client can be shared safely, but
the recommended usage is one client per build evaluation.
"""

from __future__ import annotations

import logging
import threading
from types import TracebackType
from urllib.parse import urlsplit, urlunsplit

import httpx

from codesonar_gate.errors import AuthError, NetworkError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 30.0
_SIGN_IN_PATH = "/sign_in.html"
_AUTH_REJECTED_STATUSES = frozenset({401, 403})


def sign_in_url(base_uri: str) -> str:
    """Return the hub sign-in URL for *base_uri* (path replaced, query dropped)."""
    parts = urlsplit(base_uri)
    return urlunsplit((parts.scheme, parts.netloc, _SIGN_IN_PATH, "", ""))


class HubClient:
    """Session-holding HTTP client for the hub.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds.  A hung hub can never block a
        build step for longer than this.
    http_client:
        Optional pre-configured ``httpx.Client`` (tests inject one backed by
        ``httpx.MockTransport``).  A default client is created if not
        provided; only an owned client is closed by :meth:`close`.
    """

    def __init__(
        self,
        *,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": "codesonar-gate"},
        )
        self._owns_client = http_client is None
        self._lock = threading.Lock()
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def cookies(self) -> httpx.Cookies:
        """The session cookie jar shared by every request."""
        return self._client.cookies

    def fetch_text(self, url: str) -> str:
        """GET *url* and return the response body as text.

        Raises
        ------
        AuthError
            The hub answered 401/403 (anonymous access not permitted or the
            session was rejected).
        NetworkError
            Connection failure, timeout, or any other non-2xx status.
        """
        logger.debug("Request sent to %s", url)
        with self._lock:
            try:
                response = self._client.get(url)
            except httpx.TimeoutException as exc:
                raise NetworkError(f"Timed out on url: {url}", url=url) from exc
            except httpx.HTTPError as exc:
                raise NetworkError(f"Error on url: {url}\nMessage is: {exc}", url=url) from exc

        if response.status_code in _AUTH_REJECTED_STATUSES:
            raise AuthError(f"Hub rejected request to {url} (HTTP {response.status_code}).")
        if not response.is_success:
            raise NetworkError(
                f"Error on url: {url}\nHTTP status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response.text

    def authenticate(self, base_uri: str, username: str, password: str) -> None:
        """Sign in to the hub and keep the resulting session cookie.

        Raises
        ------
        AuthError
            The sign-in form was answered with a non-success status.
        NetworkError
            The sign-in request could not be sent.
        """
        url = sign_in_url(base_uri)
        form = {
            "sif_username": username,
            "sif_password": password,
            "sif_sign_in": "yes",
            "sif_log_out_competitor": "yes",
        }
        logger.debug("Signing in to %s as %s", url, username)
        with self._lock:
            try:
                response = self._client.post(url, data=form)
            except httpx.HTTPError as exc:
                raise NetworkError(f"Error on url: {url}\nMessage is: {exc}", url=url) from exc

            if not response.is_success:
                self._authenticated = False
                raise AuthError(f"Failed to authenticate (HTTP {response.status_code}).")
            self._authenticated = True
        logger.info("Authenticated to hub %s", base_uri)

    def close(self) -> None:
        """Close the underlying HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HubClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
