import logging
import threading
import time
import webbrowser
from typing import Any, Callable, Dict, Optional

import httpx

from .auth import SpotifyPKCEAuth
from .client import SpotifyClient
from .token_manager import DEFAULT_REFRESH_THRESHOLD_SECONDS, TokenInfo, TokenManager

logger = logging.getLogger(__name__)


class SpotifySession:
    """Token store and auth flow owned by one plugin instance.

    The token is swapped under a lock so a query never sees a half-updated
    session; network calls happen outside the lock. A query racing the
    refresh job may still send the previous token, which is valid for at
    least the refresh threshold.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        token_manager: TokenManager,
        auth: Optional[SpotifyPKCEAuth] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or {}
        self.token_manager = token_manager
        self.clock = clock
        self.auth = auth or SpotifyPKCEAuth(self.config, transport=transport, clock=clock)
        self.client = SpotifyClient(self.config, token_provider=lambda: self.token, transport=transport)
        self.threshold_seconds = float(self.config.get("token_refresh_threshold", DEFAULT_REFRESH_THRESHOLD_SECONDS))

        self._token: Optional[TokenInfo] = None
        self._code_verifier: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def token(self) -> Optional[TokenInfo]:
        with self._lock:
            return self._token

    def set_token(self, token: TokenInfo, *, persist: bool = True) -> None:
        with self._lock:
            self._token = token
        if persist:
            self.token_manager.save(token)

    def restore(self) -> bool:
        """Load the persisted token, if any. Returns True when one was restored."""
        token = self.token_manager.load()
        if token is None:
            return False
        self.set_token(token, persist=False)
        logger.info("Restored persisted Spotify token")
        return True

    def is_token_valid(self) -> bool:
        return TokenManager.is_valid(self.token, threshold_seconds=self.threshold_seconds, now=self.clock())

    @property
    def pending_auth(self) -> bool:
        return self._code_verifier is not None

    def begin_auth(self, opener: Callable[[str], Any] = webbrowser.open) -> str:
        """Start the PKCE flow: remember a fresh verifier and open the authorize URL."""
        flow = self.auth.begin_oauth_flow()
        self._code_verifier = flow["pkce_pair"].code_verifier
        url = flow["auth_url"]
        logger.info("Opening Spotify authorization page in the browser")
        opener(url)
        return url

    def complete_auth(self, code: str) -> bool:
        """Exchange an authorization code; prior token is kept on any failure."""
        if not code:
            logger.error("No authorization code received")
            return False

        verifier = self._code_verifier
        if not verifier:
            logger.error("No pending authorization; start authentication again")
            return False

        token = self.auth.exchange_code_for_token(code=code, code_verifier=verifier)
        if token.is_empty:
            return False

        self._code_verifier = None
        self.set_token(token)
        logger.info("Spotify authentication completed")
        return True

    def refresh_if_needed(self) -> bool:
        """Renew the token when it expires within the threshold. Returns True when renewed."""
        current = self.token
        if not TokenManager.needs_refresh(current, threshold_seconds=self.threshold_seconds, now=self.clock()):
            return False

        if not current.refresh_token:
            logger.warning("Spotify token is about to expire and no refresh_token is available")
            return False

        refreshed = self.auth.refresh_access_token(refresh_token=current.refresh_token)
        if refreshed.is_empty:
            return False

        self.set_token(refreshed)
        logger.info("Spotify token refreshed")
        return True
