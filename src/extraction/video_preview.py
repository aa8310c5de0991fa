# src/extraction/video_preview.py — v1
"""Video title + thumbnail lookup. Best effort: never raises."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

OEMBED_ENDPOINT = "https://www.youtube.com/oembed"


class VideoPreview(BaseModel):
    video_title: str | None = None
    thumbnail_url: str | None = None


def build_thumbnail_url(video_id: str) -> str:
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


async def fetch_video_title(
    video_id: str,
    timeout_s: float = 4.5,
    client: httpx.AsyncClient | None = None,
) -> str | None:
    """Look the title up through oEmbed; None on any failure."""
    params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
    try:
        if client is not None:
            response = await client.get(OEMBED_ENDPOINT, params=params, timeout=timeout_s)
        else:
            async with httpx.AsyncClient(timeout=timeout_s) as own_client:
                response = await own_client.get(OEMBED_ENDPOINT, params=params)
        if response.status_code != 200:
            return None
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("oEmbed lookup failed for %s: %s", video_id, e)
        return None

    title = payload.get("title") if isinstance(payload, dict) else None
    if not isinstance(title, str) or not title.strip():
        return None
    return title.strip()


async def resolve_video_preview(
    video_id: str,
    title_hint: str | None = None,
    thumbnail_hint: str | None = None,
    timeout_s: float = 4.5,
    client: httpx.AsyncClient | None = None,
) -> VideoPreview:
    """Resolve title and thumbnail, preferring hints over a network lookup."""
    title = (title_hint or "").strip() or await fetch_video_title(video_id, timeout_s, client)
    thumbnail = (thumbnail_hint or "").strip() or build_thumbnail_url(video_id)
    return VideoPreview(video_title=title or None, thumbnail_url=thumbnail)
