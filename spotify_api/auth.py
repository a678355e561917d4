import base64
import hashlib
import logging
import secrets
import string
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from .token_manager import TokenInfo

logger = logging.getLogger(__name__)

SPOTIFY_ACCOUNTS_BASE_URL = "https://accounts.spotify.com"

VERIFIER_ALPHABET = string.ascii_letters + string.digits
VERIFIER_LENGTH = 64


class SpotifyAuthError(RuntimeError):
    """Token endpoint request failed; ``body`` holds the response text when there was one."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


def _base64url_no_pad(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Random alphanumeric PKCE code_verifier (RFC 7636 allows 43-128 chars)."""
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def code_challenge_from_verifier(verifier: str) -> str:
    """Compute PKCE S256 code_challenge from code_verifier."""

    digest = hashlib.sha256((verifier or "").encode("utf-8")).digest()
    return _base64url_no_pad(digest)


@dataclass(frozen=True)
class PKCEPair:
    code_verifier: str
    code_challenge: str


class SpotifyPKCEAuth:
    """Spotify OAuth (Authorization Code + PKCE) helper.

    Token requests never raise to the caller: failures are logged and an
    empty TokenInfo is returned, so callers keep whatever token they had.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or {}
        self.transport = transport
        self.clock = clock

    @property
    def client_id(self) -> str:
        return str(self.config.get("spotify_client_id", "")).strip()

    @property
    def redirect_uri(self) -> str:
        return str(self.config.get("spotify_redirect_uri", "")).strip()

    @staticmethod
    def generate_pkce_pair() -> PKCEPair:
        verifier = generate_code_verifier()
        return PKCEPair(code_verifier=verifier, code_challenge=code_challenge_from_verifier(verifier))

    def get_authorize_url(self, *, code_challenge: str, scopes: Optional[Iterable[str]] = None) -> str:
        if not self.client_id:
            raise ValueError("Missing config.spotify_client_id")
        if not self.redirect_uri:
            raise ValueError("Missing config.spotify_redirect_uri")

        scope_list = list(scopes if scopes is not None else self.config.get("spotify_scopes", []))
        scope_str = " ".join([str(s).strip() for s in scope_list if str(s).strip()])

        params: Dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id,
            "code_challenge_method": "S256",
            "code_challenge": str(code_challenge),
            "redirect_uri": self.redirect_uri,
        }
        if scope_str:
            params["scope"] = scope_str

        return f"{SPOTIFY_ACCOUNTS_BASE_URL}/authorize?{urllib.parse.urlencode(params)}"

    def begin_oauth_flow(self) -> Dict[str, Any]:
        """Return {auth_url, pkce_pair} for starting the PKCE browser flow."""

        pkce = self.generate_pkce_pair()
        url = self.get_authorize_url(code_challenge=pkce.code_challenge)
        return {"auth_url": url, "pkce_pair": pkce}

    def exchange_code_for_token(self, *, code: str, code_verifier: str) -> TokenInfo:
        try:
            payload = self._post_form(
                f"{SPOTIFY_ACCOUNTS_BASE_URL}/api/token",
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "client_id": self.client_id,
                    "code_verifier": code_verifier,
                },
            )
        except SpotifyAuthError as e:
            self._log_failure("code exchange", e)
            return TokenInfo.empty()

        token = self._token_from_payload("code exchange", payload)
        if token.is_empty:
            logger.error(f"Spotify token exchange returned no access_token: {payload}")
        return token

    def refresh_access_token(self, *, refresh_token: str) -> TokenInfo:
        try:
            payload = self._post_form(
                f"{SPOTIFY_ACCOUNTS_BASE_URL}/api/token",
                {
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                },
            )
        except SpotifyAuthError as e:
            self._log_failure("token refresh", e)
            return TokenInfo.empty()

        token = self._token_from_payload("token refresh", payload)
        if token.is_empty:
            logger.error(f"Spotify token refresh returned no access_token: {payload}")
            return token

        # Spotify may omit refresh_token on refresh; keep existing.
        if not token.refresh_token:
            token = TokenInfo(
                access_token=token.access_token,
                token_type=token.token_type,
                expires_in=token.expires_in,
                refresh_token=refresh_token,
                scope=token.scope,
                expires=token.expires,
            )
        return token

    def _token_from_payload(self, what: str, payload: Dict[str, Any]) -> TokenInfo:
        try:
            return TokenInfo.from_spotify_token_response(payload, now=self.clock())
        except (TypeError, ValueError) as e:
            logger.error(f"Spotify {what} returned a malformed token: {e} - response: {payload}")
            return TokenInfo.empty()

    @staticmethod
    def _log_failure(what: str, error: SpotifyAuthError) -> None:
        if error.body:
            logger.error(f"Spotify {what} failed: {error} - response: {error.body}")
        else:
            logger.error(f"Spotify {what} failed: {error}")

    def _post_form(self, url: str, form: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: str(v) for k, v in (form or {}).items() if v is not None}
        timeout = float(self.config.get("http_timeout", 30.0))

        try:
            with httpx.Client(timeout=timeout, follow_redirects=False, transport=self.transport) as client:
                resp = client.post(
                    url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            raise SpotifyAuthError(f"Spotify token request failed: {e}") from e

        if resp.status_code >= 400:
            raise SpotifyAuthError(
                f"Spotify token request failed (HTTP {resp.status_code})",
                status=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            # JSONDecodeError or UnicodeDecodeError
            raise SpotifyAuthError(
                "Spotify token response was not JSON",
                status=resp.status_code,
                body=resp.content.decode("utf-8", errors="replace"),
            ) from e

        if not isinstance(payload, dict):
            raise SpotifyAuthError(f"Spotify token response was not an object: {payload}", status=resp.status_code)

        return payload
