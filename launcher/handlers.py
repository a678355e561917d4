import functools
import threading
from typing import Any, Callable, Dict, List, Optional

from constants import (
    COMMAND_DEVICES,
    COMMAND_ME,
    COMMAND_NEXT,
    COMMAND_QUEUE,
    COMMAND_RECENT,
    COMMAND_SEARCH,
)
from launcher import player
from launcher.formatting import artists_line, first_image_url, image_preview, preview_for_artist, preview_for_track
from launcher.host import PublicAPI
from launcher.models import Action, ChangeQueryParam, Context, Icon, Preview, Query, Result
from spotify_api.client import SpotifyAPIError, SpotifyClient
from spotify_api.session import SpotifySession
from utils.logger import log_error

Handler = Callable[[SpotifySession, PublicAPI, Context, Query], List[Result]]


def degrade_to_empty(handler: Handler) -> Handler:
    """Log Spotify API failures and return no results instead of raising."""

    @functools.wraps(handler)
    def wrapper(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
        try:
            return handler(session, api, ctx, query)
        except SpotifyAPIError as e:
            if e.body:
                log_error(f"{handler.__name__} failed: {e} - response: {e.body}")
            else:
                log_error(f"{handler.__name__} failed: {e}")
            return []

    return wrapper


def _items(page: Dict[str, Any], key: str = "items") -> List[Dict[str, Any]]:
    # Spotify pages may contain null entries (e.g. removed playlists in search)
    return [item for item in (page or {}).get(key) or [] if isinstance(item, dict)]


def _play_action(client: SpotifyClient, uri: str) -> Action:
    return Action(name="Play", action=functools.partial(player.play, client, uri))


def _track_result(client: SpotifyClient, track: Dict[str, Any], *, group: str = "", group_score: int = 0) -> Result:
    actions = [_play_action(client, track.get("uri", ""))]
    if track.get("type", "track") == "track":
        actions.append(Action(name="Like", action=functools.partial(player.save_track, client, track.get("uri", ""))))
    return Result(
        title=track.get("name", ""),
        sub_title=_playable_subtitle(track),
        preview=preview_for_track(track),
        group=group,
        group_score=group_score,
        actions=actions,
    )


def _playable_subtitle(item: Dict[str, Any]) -> str:
    # Podcast episodes carry a show instead of artists
    if item.get("type") == "episode":
        return f"from {(item.get('show') or {}).get('name', '')}"
    return artists_line(item)


def _artist_result(client: SpotifyClient, artist: Dict[str, Any], *, group: str, group_score: int, scored: bool = False) -> Result:
    uri = artist.get("uri", "")
    return Result(
        title=artist.get("name", ""),
        preview=preview_for_artist(artist),
        group=group,
        group_score=group_score,
        score=int(artist.get("popularity", 0) or 0) if scored else 0,
        actions=[
            _play_action(client, uri),
            Action(name="Follow", action=functools.partial(player.follow_artist, client, uri)),
        ],
    )


def _playlist_result(client: SpotifyClient, playlist: Dict[str, Any], *, group: str, group_score: int) -> Result:
    return Result(
        title=playlist.get("name", ""),
        preview=image_preview(playlist.get("name", ""), playlist.get("images")),
        group=group,
        group_score=group_score,
        actions=[_play_action(client, playlist.get("uri", ""))],
    )


def _album_result(client: SpotifyClient, album: Dict[str, Any], *, group: str, group_score: int) -> Result:
    return Result(
        title=album.get("name", ""),
        sub_title=artists_line(album),
        preview=image_preview(album.get("name", ""), album.get("images")),
        group=group,
        group_score=group_score,
        actions=[_play_action(client, album.get("uri", ""))],
    )


def _activate_and_requery(
    session: SpotifySession, api: PublicAPI, ctx: Context, device: Dict[str, Any], raw_query: str
) -> Optional[threading.Timer]:
    if device.get("is_active") or not device.get("id"):
        return None
    if not player.activate_device(session.client, str(device["id"])):
        return None

    # Spotify needs a moment before the device shows up as active
    timer = threading.Timer(
        float(session.config.get("device_activation_delay", 1.0)),
        api.change_query,
        args=(ctx, ChangeQueryParam(query_type="input", query_text=raw_query)),
    )
    timer.daemon = True
    timer.start()
    return timer


@degrade_to_empty
def list_devices(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    results = []
    for device in session.client.get_devices():
        results.append(
            Result(
                title=device.get("name", "") + (" - Active" if device.get("is_active") else ""),
                sub_title=device.get("type", ""),
                actions=[
                    Action(
                        name="Activate",
                        action=functools.partial(_activate_and_requery, session, api, ctx, device, query.raw_query),
                        prevent_hide_after_action=True,
                    )
                ],
            )
        )
    return results


@degrade_to_empty
def playing(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    client = session.client
    current = client.get_currently_playing()
    if current is None:
        return []

    item = current["item"]
    toggle = (
        Action(name="Pause", action=functools.partial(player.pause, client))
        if current.get("is_playing")
        else Action(name="Resume", action=functools.partial(player.resume, client))
    )
    actions = [
        toggle,
        Action(name="Next", action=functools.partial(player.skip_to_next, client)),
        Action(name="Previous", action=functools.partial(player.skip_to_previous, client)),
    ]
    if item.get("type", "track") == "track":
        actions.append(Action(name="Like", action=functools.partial(player.save_track, client, item.get("uri", ""))))

    results = [
        Result(
            title=item.get("name", ""),
            sub_title=_playable_subtitle(item),
            preview=preview_for_track(item),
            group="Playing",
            group_score=100,
            actions=actions,
        )
    ]

    try:
        queue = client.get_user_queue()
    except SpotifyAPIError as e:
        log_error(f"Failed to load queue: {e}")
        return results

    results.extend(_track_result(client, track, group="Queue", group_score=90) for track in _items(queue, "queue"))
    return results


@degrade_to_empty
def skip_to_next(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    player.skip_to_next(session.client)
    return []


@degrade_to_empty
def user_queue(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    client = session.client
    return [_track_result(client, track) for track in _items(client.get_user_queue(), "queue")]


@degrade_to_empty
def show_recent(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    client = session.client
    results = []
    for item in _items(client.get_recently_played()):
        track = item.get("track")
        if isinstance(track, dict):
            results.append(_track_result(client, track))
    return results


@degrade_to_empty
def show_search(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    if not query.search.strip():
        return [Result(title="Search", sub_title="enter a search query")]

    client = session.client
    limit = int(session.config.get("search_limit", 5))
    found = client.search(query.search, limit=limit)

    results: List[Result] = []
    results.extend(
        _playlist_result(client, item, group="Playlists", group_score=170)
        for item in _items(found.get("playlists"))[:limit]
    )
    results.extend(
        _artist_result(client, item, group="Artists", group_score=150)
        for item in _items(found.get("artists"))[:limit]
    )
    results.extend(
        _track_result(client, item, group="Tracks", group_score=100)
        for item in _items(found.get("tracks"))[:limit]
    )
    results.extend(
        _album_result(client, item, group="Albums", group_score=90)
        for item in _items(found.get("albums"))[:limit]
    )
    return results


@degrade_to_empty
def me(session: SpotifySession, api: PublicAPI, ctx: Context, query: Query) -> List[Result]:
    client = session.client
    profile = client.me()
    avatar = first_image_url(profile.get("images"))

    results = [
        Result(
            title=profile.get("display_name") or profile.get("id", ""),
            icon=Icon.url(avatar) if avatar else Icon(),
            group="User",
            group_score=100,
            preview=Preview(
                preview_properties={
                    "UserId": profile.get("id", ""),
                    "Email": profile.get("email", ""),
                }
            ),
        )
    ]

    results.extend(
        _playlist_result(client, item, group="Playlists", group_score=90)
        for item in _items(client.current_user_playlists())
    )
    results.extend(
        _artist_result(client, item, group="Artists", group_score=80, scored=True)
        for item in _items(client.followed_artists().get("artists"))
    )
    results.extend(
        _track_result(client, item["track"], group="Tracks", group_score=70)
        for item in _items(client.current_user_saved_tracks())
        if isinstance(item.get("track"), dict)
    )
    results.extend(
        _album_result(client, item["album"], group="Albums", group_score=60)
        for item in _items(client.current_user_saved_albums())
        if isinstance(item.get("album"), dict)
    )
    return results


COMMAND_HANDLERS: Dict[str, Handler] = {
    COMMAND_DEVICES: list_devices,
    COMMAND_NEXT: skip_to_next,
    COMMAND_QUEUE: user_queue,
    COMMAND_RECENT: show_recent,
    COMMAND_SEARCH: show_search,
    COMMAND_ME: me,
}


def dispatch(command: str) -> Handler:
    """Handler for a command; anything unrecognized shows what is playing."""
    return COMMAND_HANDLERS.get(command, playing)
