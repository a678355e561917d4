"""Spotify Web API integration (OAuth PKCE) for the launcher plugin."""

from .auth import SpotifyAuthError, SpotifyPKCEAuth, code_challenge_from_verifier, generate_code_verifier
from .client import SpotifyAPIError, SpotifyClient
from .refresh_scheduler import RefreshScheduler
from .session import SpotifySession
from .token_manager import TokenInfo, TokenManager

__all__ = [
    "SpotifyAuthError",
    "SpotifyPKCEAuth",
    "code_challenge_from_verifier",
    "generate_code_verifier",
    "SpotifyAPIError",
    "SpotifyClient",
    "RefreshScheduler",
    "SpotifySession",
    "TokenInfo",
    "TokenManager",
]
