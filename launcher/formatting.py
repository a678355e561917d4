from typing import Any, Dict, List, Optional

from launcher.models import Preview


def format_duration(ms: int) -> str:
    """Format a duration in milliseconds as m:ss."""
    total_seconds = int(round((ms or 0) / 1000))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def artists_line(item: Dict[str, Any]) -> str:
    names = [a.get("name", "") for a in (item.get("artists") or []) if isinstance(a, dict)]
    return f"by {', '.join(n for n in names if n)}"


def first_image_url(images: Optional[List[Dict[str, Any]]]) -> str:
    for image in images or []:
        if isinstance(image, dict) and image.get("url"):
            return str(image["url"])
    return ""


def image_preview(name: str, images: Optional[List[Dict[str, Any]]], properties: Optional[Dict[str, str]] = None) -> Preview:
    url = first_image_url(images)
    return Preview(
        preview_data=f"![{name}]({url})" if url else "",
        preview_properties=dict(properties or {}),
    )


def preview_for_track(track: Dict[str, Any]) -> Preview:
    album = track.get("album") or {}
    return image_preview(
        track.get("name", ""),
        album.get("images"),
        {
            "Album": album.get("name", ""),
            "Duration": format_duration(track.get("duration_ms", 0)),
            "Release": album.get("release_date", ""),
        },
    )


def preview_for_artist(artist: Dict[str, Any]) -> Preview:
    return image_preview(
        artist.get("name", ""),
        artist.get("images"),
        {
            "Followers": f"{(artist.get('followers') or {}).get('total', 0)}",
            "Popularity": f"{artist.get('popularity', 0)}",
        },
    )
