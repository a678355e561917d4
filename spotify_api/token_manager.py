import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from constants import SETTING_ACCESS_TOKEN

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_THRESHOLD_SECONDS = 300


class SettingsBackend(Protocol):
    def get(self, key: str, default: str = "") -> str: ...

    def set(self, key: str, value: str) -> None: ...


@dataclass(frozen=True)
class TokenInfo:
    """Canonical token payload persisted by TokenManager.

    ``expires`` is an absolute epoch timestamp (seconds), computed when the
    token is received; ``expires_in`` keeps the lifetime Spotify reported.
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    expires: Optional[float] = None

    @staticmethod
    def empty() -> "TokenInfo":
        return TokenInfo(access_token="")

    @property
    def is_empty(self) -> bool:
        return not self.access_token

    @staticmethod
    def from_spotify_token_response(payload: Dict[str, Any], *, now: Optional[float] = None) -> "TokenInfo":
        """Convert Spotify token response JSON into TokenInfo.

        Spotify returns:
        - access_token
        - token_type
        - expires_in (seconds)
        - refresh_token (optional on refresh)
        - scope (space-delimited string)
        """

        now_ts = float(time.time() if now is None else now)
        expires_in = int(payload.get("expires_in", 0) or 0)

        return TokenInfo(
            access_token=str(payload.get("access_token", "") or ""),
            token_type=str(payload.get("token_type", "Bearer") or "Bearer"),
            expires_in=expires_in,
            refresh_token=payload.get("refresh_token"),
            scope=payload.get("scope"),
            expires=now_ts + expires_in,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "refresh_token": self.refresh_token,
            "scope": self.scope,
            "expires": self.expires,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_json(raw: str) -> Optional["TokenInfo"]:
        """Parse a persisted token string; None when empty or unreadable."""
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Persisted token is not valid JSON: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("Persisted token is not a JSON object")
            return None

        expires = data.get("expires")
        try:
            return TokenInfo(
                access_token=str(data.get("access_token", "") or ""),
                token_type=str(data.get("token_type", "Bearer") or "Bearer"),
                expires_in=int(data.get("expires_in", 0) or 0),
                refresh_token=data.get("refresh_token"),
                scope=data.get("scope"),
                expires=float(expires) if expires is not None else None,
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Persisted token has invalid fields: {e}")
            return None


class TokenManager:
    """Persists the token in the host settings store and answers expiry questions."""

    def __init__(self, store: SettingsBackend, *, setting_key: str = SETTING_ACCESS_TOKEN):
        self.store = store
        self.setting_key = setting_key

    def load(self) -> Optional[TokenInfo]:
        """Load the persisted token; None when absent or without an access token."""
        token = TokenInfo.from_json(self.store.get(self.setting_key, ""))
        if token is None or token.is_empty:
            return None
        return token

    def save(self, token: TokenInfo) -> bool:
        try:
            self.store.set(self.setting_key, token.to_json())
            return True
        except OSError as e:
            logger.error(f"Failed to persist Spotify token: {e}")
            return False

    @staticmethod
    def is_valid(
        token: Optional[TokenInfo],
        *,
        threshold_seconds: float = DEFAULT_REFRESH_THRESHOLD_SECONDS,
        now: Optional[float] = None,
    ) -> bool:
        """True when the token has an access token and expires more than threshold from now."""
        if token is None or token.is_empty or token.expires is None:
            return False
        now_ts = time.time() if now is None else now
        return float(token.expires) - now_ts > float(threshold_seconds)

    @staticmethod
    def needs_refresh(
        token: Optional[TokenInfo],
        *,
        threshold_seconds: float = DEFAULT_REFRESH_THRESHOLD_SECONDS,
        now: Optional[float] = None,
    ) -> bool:
        if token is None or token.is_empty or token.expires is None:
            return False
        now_ts = time.time() if now is None else now
        return float(token.expires) - now_ts <= float(threshold_seconds)
