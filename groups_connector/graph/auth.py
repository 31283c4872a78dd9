"""App-only access tokens for Microsoft Graph."""

import time
from typing import Callable

import requests
import structlog

from groups_connector.graph.errors import AuthenticationError

log = structlog.stdlib.get_logger()

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"

# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN_SECONDS = 60


class ClientCredentialTokenProvider:
    """Requests and caches client-credentials tokens from the identity platform."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority_host: str = "https://login.microsoftonline.com",
        session: requests.Session | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._token_url = f"{authority_host.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._session = session or requests.Session()
        self._timeout = timeout
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0

    def get_token(self) -> str:
        """Return a valid bearer token, requesting a new one when needed.

        Raises:
            AuthenticationError: If the token endpoint rejects the request
        """
        if self._access_token and self._clock() < self._expires_at:
            return self._access_token

        log.debug("requesting_access_token", client_id=self._client_id)
        try:
            response = self._session.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": GRAPH_DEFAULT_SCOPE,
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            log.error("access_token_request_failed", error=str(e))
            raise AuthenticationError(f"Token request failed: {e}") from e

        if not response.ok:
            try:
                detail = response.json().get("error_description", response.text)
            except ValueError:
                detail = response.text
            log.error("access_token_rejected", status_code=response.status_code)
            raise AuthenticationError(f"{response.status_code} error requesting token: {detail}")

        payload = response.json()
        self._access_token = payload["access_token"]
        expires_in = float(payload.get("expires_in", 3600))
        self._expires_at = self._clock() + max(expires_in - EXPIRY_MARGIN_SECONDS, 0.0)

        log.info("access_token_acquired", expires_in=expires_in)
        return self._access_token
