"""Playback write actions.

Every action resolves a target device first and logs-and-returns False
when none is available, instead of sending a request Spotify will reject.
"""

from typing import Optional

from spotify_api.client import SpotifyAPIError, SpotifyClient
from utils.logger import log_error, log_info, log_warning

CONTEXT_URI_KINDS = ("artist", "playlist", "album")


def uri_kind(uri: str) -> str:
    """'spotify:track:abc' -> 'track'; '' for anything that is not a spotify URI."""
    parts = (uri or "").split(":")
    if len(parts) >= 3 and parts[0] == "spotify":
        return parts[1]
    return ""


def _log_api_error(what: str, error: SpotifyAPIError) -> None:
    if error.body:
        log_error(f"Failed to {what}: {error} - response: {error.body}")
    else:
        log_error(f"Failed to {what}: {error}")


def resolve_device_id(client: SpotifyClient) -> Optional[str]:
    """Active device if there is one, else the first available; None when there are none."""
    try:
        devices = client.get_devices()
    except SpotifyAPIError as e:
        _log_api_error("list devices", e)
        return None

    devices = [d for d in devices if d.get("id")]
    if not devices:
        log_error("No available Spotify device; open Spotify on a device first")
        return None

    active = next((d for d in devices if d.get("is_active")), None)
    return str((active or devices[0])["id"])


def play(client: SpotifyClient, uri: str) -> bool:
    """Play a track, artist, playlist or album URI.

    Tracks are queued and then skipped to: the Web API has no call that
    plays a single track while keeping the current context.
    """
    kind = uri_kind(uri)
    if kind != "track" and kind not in CONTEXT_URI_KINDS:
        log_warning(f"Don't know how to play {uri!r}")
        return False

    device_id = resolve_device_id(client)
    if device_id is None:
        return False

    log_info(f"Playing {uri}")
    try:
        if kind == "track":
            client.add_to_queue(uri, device_id)
            client.next_track(device_id)
        else:
            client.start_playback(device_id, context_uri=uri)
    except SpotifyAPIError as e:
        _log_api_error(f"play {uri}", e)
        return False
    return True


def pause(client: SpotifyClient) -> bool:
    device_id = resolve_device_id(client)
    if device_id is None:
        return False
    try:
        client.pause_playback(device_id)
    except SpotifyAPIError as e:
        _log_api_error("pause playback", e)
        return False
    return True


def resume(client: SpotifyClient) -> bool:
    device_id = resolve_device_id(client)
    if device_id is None:
        return False
    try:
        client.start_playback(device_id)
    except SpotifyAPIError as e:
        _log_api_error("resume playback", e)
        return False
    return True


def skip_to_next(client: SpotifyClient) -> bool:
    device_id = resolve_device_id(client)
    if device_id is None:
        return False
    try:
        client.next_track(device_id)
    except SpotifyAPIError as e:
        _log_api_error("skip to next track", e)
        return False
    return True


def skip_to_previous(client: SpotifyClient) -> bool:
    device_id = resolve_device_id(client)
    if device_id is None:
        return False
    try:
        client.previous_track(device_id)
    except SpotifyAPIError as e:
        _log_api_error("skip to previous track", e)
        return False
    return True


def activate_device(client: SpotifyClient, device_id: str) -> bool:
    if not device_id:
        log_error("Cannot activate a device without an id")
        return False
    try:
        client.transfer_playback(device_id)
    except SpotifyAPIError as e:
        _log_api_error(f"activate device {device_id}", e)
        return False
    return True


def follow_artist(client: SpotifyClient, uri: str) -> bool:
    if uri_kind(uri) != "artist":
        log_warning(f"Not an artist URI: {uri!r}")
        return False
    try:
        client.follow_artists([uri.split(":")[-1]])
    except SpotifyAPIError as e:
        _log_api_error(f"follow {uri}", e)
        return False
    return True


def save_track(client: SpotifyClient, uri: str) -> bool:
    if uri_kind(uri) != "track":
        log_warning(f"Not a track URI: {uri!r}")
        return False
    try:
        client.save_tracks([uri.split(":")[-1]])
    except SpotifyAPIError as e:
        _log_api_error(f"save {uri}", e)
        return False
    return True
