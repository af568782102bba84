"""
OAuth2 client-credentials token exchange.

Turns the active client credentials into a bearer token. Tokens are not
cached: every call performs a fresh grant, and callers that need several
requests in one operation acquire once and reuse the token within it.
"""

from typing import Optional, Tuple

import requests

from ..config import OAuthConfig, get_config
from ..exceptions import MissingCredentialsError
from ..utils.logger import get_logger
from .credential_service import CredentialService


class TokenService:
    """Client-credentials grant against the configured authorization server."""

    def __init__(
        self,
        credential_service: Optional[CredentialService] = None,
        config: Optional[OAuthConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self.credential_service = credential_service or CredentialService()
        self.config = config or get_config().oauth
        self.http = http or requests.Session()
        self.logger = get_logger()
        self.last_status: Optional[int] = None

    def _resolve_client(self) -> Optional[Tuple[str, str, str]]:
        """Stored active credentials first, then the out-of-band bootstrap pair."""
        stored = self.credential_service.read_active_credentials()
        if stored.is_complete:
            return stored.client_id, stored.client_secret, "active_connection"

        if self.config.fallback_client_id and self.config.fallback_client_secret:
            return self.config.fallback_client_id, self.config.fallback_client_secret, "fallback"

        return None

    def get_access_token(self) -> Optional[str]:
        """
        Perform a client-credentials grant.

        Returns:
            The access token, or None when no credentials are configured, the
            authorization server answers with a non-success status, or the
            response carries no ``access_token``
        """
        self.last_status = None
        client = self._resolve_client()
        if client is None:
            self.logger.info("No client credentials configured; skipping token request")
            return None

        client_id, client_secret, credential_source = client
        try:
            response = self.http.post(
                self.config.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "audience": self.config.audience,
                },
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(
                "Token request failed",
                extra={"token_url": self.config.token_url, "error": str(e)},
            )
            return None

        self.last_status = response.status_code
        if not response.ok:
            self.logger.error(
                "Token endpoint returned an error",
                extra={
                    "status_code": response.status_code,
                    "credential_source": credential_source,
                    "body": response.text[:500],
                },
            )
            return None

        try:
            body = response.json()
        except ValueError:
            body = None

        access_token = body.get("access_token") if isinstance(body, dict) else None
        if not access_token:
            self.logger.error(
                "Token response missing access_token",
                extra={"status_code": response.status_code, "credential_source": credential_source},
            )
            return None

        self.logger.info(
            "Access token acquired",
            extra={"credential_source": credential_source, "client_id": client_id},
        )
        return access_token

    def require_access_token(self) -> str:
        """
        Like get_access_token, but raises when no token can be obtained.

        Raises:
            MissingCredentialsError: If no token is available
        """
        token = self.get_access_token()
        if not token:
            raise MissingCredentialsError(token_status=self.last_status)
        return token
