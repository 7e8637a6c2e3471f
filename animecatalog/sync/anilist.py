"""Catalog sync from the AniList GraphQL API.

Fetches the most recently started anime, maps each entry onto the
catalog schema and upserts it. A page that fails to load is skipped, as
is any single entry that fails to transform or store; the run always
continues to the end.
"""

import asyncio
import logging
import re
from typing import Any

import httpx

from animecatalog.catalog.database import close_db, init_db, session_scope
from animecatalog.catalog.repository import upsert_anime
from animecatalog.config.settings import get_settings
from animecatalog.logging.audit import log_event, setup_logging

MEDIA_QUERY = """
query ($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    media(type: ANIME, sort: START_DATE_DESC) {
      id
      title { romaji english }
      description
      format
      status
      episodes
      duration
      seasonYear
      startDate { year month day }
      averageScore
      popularity
      genres
      rankings { rank type format }
      studios(isMain: true) {
        nodes { name }
      }
      coverImage { extraLarge large }
    }
  }
}
"""

OVERVIEW_MAX_CHARS = 2000

STATUS_MAP = {
    "RELEASING": "AIRING",
    "FINISHED": "COMPLETED",
    "CANCELLED": "DISMISSED",
}

# Word characters are ASCII-only, whitespace is Unicode-aware, matching the
# slugs already issued as catalog ids and signed into episode links
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")


async def fetch_media_page(client: httpx.AsyncClient, url: str, page: int, per_page: int) -> list[dict]:
    """One page of media. Any HTTP or decoding failure yields an empty list."""
    try:
        resp = await client.post(
            url,
            json={"query": MEDIA_QUERY, "variables": {"page": page, "perPage": per_page}},
        )
        if resp.status_code >= 400:
            log_event(logging.WARNING, "AniList page fetch failed", page=page, upstream_status=resp.status_code)
            return []
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log_event(logging.WARNING, "AniList page fetch failed", page=page, error=str(e))
        return []

    return ((data.get("data") or {}).get("Page") or {}).get("media") or []


def generate_slug(title: str) -> str:
    slug = _NON_WORD_RE.sub("", title.lower())
    return _WHITESPACE_RE.sub("-", slug)


def clean_html(text: str | None) -> str | None:
    if not text:
        return None
    return _TAG_RE.sub("", text)[:OVERVIEW_MAX_CHARS]


def map_status(status: str | None) -> str | None:
    return STATUS_MAP.get(status or "")


def format_date(date: dict | None) -> str | None:
    if not date or not date.get("year"):
        return None
    month = date.get("month") or 1
    day = date.get("day") or 1
    return f"{date['year']}-{month:02d}-{day:02d}"


def extract_top_rank(rankings: list[dict] | None) -> str | None:
    """'Top #N' from the RATED ranking, falling back to POPULAR."""
    if not rankings:
        return None
    rated = next((r for r in rankings if r.get("type") == "RATED"), None)
    popular = next((r for r in rankings if r.get("type") == "POPULAR"), None)
    top = rated or popular
    if top is None:
        return None
    return f"Top #{top['rank']}"


def transform(media: dict) -> tuple[dict[str, Any], list[str]]:
    """Map one AniList media entry to an anime row and its tag names."""
    titles = media.get("title") or {}
    title = titles.get("english") or titles.get("romaji")
    if not title:
        raise ValueError(f"AniList media {media.get('id')} has no title")

    cover = media.get("coverImage") or {}
    studios = (media.get("studios") or {}).get("nodes") or []
    duration = media.get("duration")

    record = {
        "id": f"{generate_slug(title)}-{media['id']}",
        "title": title,
        "year": media.get("seasonYear") or None,
        "type": media.get("format") or None,
        "image": cover.get("extraLarge") or cover.get("large") or None,
        "overview": clean_html(media.get("description")),
        "episodes": media.get("episodes") or 0,
        "duration": f"{duration} min" if duration else None,
        "audio": "SUB",
        "dubbed_languages": None,
        "rating": media.get("averageScore") or None,
        "popularity": media.get("popularity") or None,
        "top_genre_rank": extract_top_rank(media.get("rankings")),
        "airing_status": map_status(media.get("status")),
        "airing_date": format_date(media.get("startDate")),
        "studio": studios[0].get("name") if studios else None,
        "total_seasons": 1,
    }
    return record, list(media.get("genres") or [])


async def sync_catalog(client: httpx.AsyncClient | None = None) -> int:
    """Run one sync pass. Returns the number of anime stored."""
    settings = get_settings()
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=settings.sync_timeout_seconds)

    stored = 0
    try:
        await init_db()
        for page in range(1, settings.sync_pages + 1):
            media_list = await fetch_media_page(client, settings.anilist_url, page, settings.sync_per_page)
            for media in media_list:
                try:
                    record, tags = transform(media)
                    async with session_scope() as session:
                        await upsert_anime(session, record, tags)
                    stored += 1
                except Exception:
                    log_event(logging.ERROR, "Upsert failed", exc_info=True, anilist_id=media.get("id"))
    finally:
        if owns_client:
            await client.aclose()

    log_event(logging.INFO, "Catalog sync finished", stored=stored)
    return stored


async def run_sync() -> int:
    """One sync pass that also releases the database engine."""
    try:
        return await sync_catalog()
    finally:
        await close_db()


def main() -> None:
    """Console entry point: ``animecatalog-sync``."""
    setup_logging()
    asyncio.run(run_sync())


if __name__ == "__main__":
    main()
