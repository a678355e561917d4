import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from .token_manager import TokenInfo

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"

DEFAULT_SEARCH_TYPES = ("playlist", "artist", "track", "album")


class SpotifyAPIError(RuntimeError):
    """Spotify Web API request failed."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class SpotifyClient:
    """Thin Spotify Web API client over httpx.

    The bearer token is read from ``token_provider`` on every request, so a
    token swapped in by the refresh scheduler is picked up by the next call.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        token_provider: Callable[[], Optional[TokenInfo]],
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config or {}
        self.token_provider = token_provider
        self.transport = transport

    # -----------------
    # HTTP helpers
    # -----------------

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider()
        if token is None or token.is_empty:
            raise SpotifyAPIError("No Spotify token available. Authenticate first.")
        return {
            "Authorization": f"{token.token_type or 'Bearer'} {token.access_token}",
            "Accept": "application/json",
        }

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make a Spotify Web API request and return parsed JSON ({} for empty bodies).

        429 responses honor Retry-After up to ``spotify_max_retries`` times;
        any other failure raises SpotifyAPIError.
        """

        max_retries = int(self.config.get("spotify_max_retries", 1))
        timeout = float(self.config.get("http_timeout", 30.0))
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        attempt = 0
        while True:
            attempt += 1
            headers = self._auth_headers()

            try:
                with httpx.Client(base_url=SPOTIFY_API_BASE_URL, timeout=timeout, transport=self.transport) as client:
                    resp = client.request(method.upper(), path, params=query or None, json=json_body, headers=headers)
            except httpx.HTTPError as e:
                raise SpotifyAPIError(f"Spotify API request failed: {e}") from e

            if resp.status_code == 429 and attempt <= max_retries:
                retry_after = resp.headers.get("Retry-After")
                try:
                    delay = float(retry_after) if retry_after is not None else 1.0
                except ValueError:
                    delay = 1.0
                logger.warning(f"Spotify rate limited {method.upper()} {path}; retrying in {delay:.0f}s")
                time.sleep(min(30.0, max(1.0, delay)))
                continue

            if resp.status_code >= 400:
                raise SpotifyAPIError(
                    f"Spotify API error {resp.status_code} on {method.upper()} {path}",
                    status=resp.status_code,
                    body=resp.text,
                )

            if resp.status_code == 204 or not resp.content:
                return {}

            try:
                payload = resp.json()
            except ValueError as e:
                # JSONDecodeError or UnicodeDecodeError
                raise SpotifyAPIError(
                    f"Spotify API response was not JSON (status {resp.status_code})",
                    status=resp.status_code,
                    body=resp.content.decode("utf-8", errors="replace"),
                ) from e

            return payload if isinstance(payload, dict) else {"items": payload}

    # -----------------
    # Player (read)
    # -----------------

    def get_devices(self) -> List[Dict[str, Any]]:
        devices = self.request_json("GET", "/me/player/devices").get("devices") or []
        return [d for d in devices if isinstance(d, dict)]

    def get_currently_playing(self) -> Optional[Dict[str, Any]]:
        """Currently playing context, or None when nothing is playing."""
        current = self.request_json("GET", "/me/player/currently-playing")
        if not current or not current.get("item"):
            return None
        return current

    def get_user_queue(self) -> Dict[str, Any]:
        return self.request_json("GET", "/me/player/queue")

    def get_recently_played(self, *, limit: int = 20) -> Dict[str, Any]:
        return self.request_json("GET", "/me/player/recently-played", params={"limit": limit})

    # -----------------
    # Player (write)
    # -----------------

    def transfer_playback(self, device_id: str, *, play: bool = True) -> None:
        self.request_json("PUT", "/me/player", json_body={"device_ids": [device_id], "play": play})

    def start_playback(
        self,
        device_id: Optional[str] = None,
        *,
        context_uri: Optional[str] = None,
        uris: Optional[List[str]] = None,
    ) -> None:
        body: Dict[str, Any] = {}
        if context_uri:
            body["context_uri"] = context_uri
        if uris:
            body["uris"] = list(uris)
        self.request_json("PUT", "/me/player/play", params={"device_id": device_id}, json_body=body or None)

    def pause_playback(self, device_id: Optional[str] = None) -> None:
        self.request_json("PUT", "/me/player/pause", params={"device_id": device_id})

    def next_track(self, device_id: Optional[str] = None) -> None:
        self.request_json("POST", "/me/player/next", params={"device_id": device_id})

    def previous_track(self, device_id: Optional[str] = None) -> None:
        self.request_json("POST", "/me/player/previous", params={"device_id": device_id})

    def add_to_queue(self, uri: str, device_id: Optional[str] = None) -> None:
        self.request_json("POST", "/me/player/queue", params={"uri": uri, "device_id": device_id})

    # -----------------
    # Search
    # -----------------

    def search(self, q: str, *, types: Iterable[str] = DEFAULT_SEARCH_TYPES, limit: int = 5) -> Dict[str, Any]:
        return self.request_json("GET", "/search", params={"q": q, "type": ",".join(types), "limit": limit})

    # -----------------
    # Current user / library
    # -----------------

    def me(self) -> Dict[str, Any]:
        return self.request_json("GET", "/me")

    def current_user_playlists(self, *, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        return self.request_json("GET", "/me/playlists", params={"limit": limit, "offset": offset})

    def followed_artists(self, *, limit: int = 50) -> Dict[str, Any]:
        # Endpoint shape: {artists: {items: [...], cursors: {...}}}
        return self.request_json("GET", "/me/following", params={"type": "artist", "limit": limit})

    def current_user_saved_tracks(self, *, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        return self.request_json("GET", "/me/tracks", params={"limit": limit, "offset": offset})

    def current_user_saved_albums(self, *, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        return self.request_json("GET", "/me/albums", params={"limit": limit, "offset": offset})

    def follow_artists(self, ids: List[str]) -> None:
        ids = [str(i).strip() for i in (ids or []) if str(i).strip()]
        if ids:
            self.request_json("PUT", "/me/following", params={"type": "artist", "ids": ",".join(ids)})

    def save_tracks(self, ids: List[str]) -> None:
        ids = [str(i).strip() for i in (ids or []) if str(i).strip()]
        if ids:
            self.request_json("PUT", "/me/tracks", params={"ids": ",".join(ids)})
