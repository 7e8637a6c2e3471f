"""Catalog queries.

All lookups go through bound parameters; nothing from the request is
interpolated into SQL text.
"""

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from animecatalog.catalog.models import Anime, AnimeTag, EpisodeLink, EpisodeLinks, SearchFilters

SUMMARY_COLUMNS = (
    Anime.id,
    Anime.title,
    Anime.year,
    Anime.type,
    Anime.image,
    Anime.duration,
    Anime.rating,
)

# Fields refreshed when the sync job sees an anime it already stored
SYNC_UPDATE_FIELDS = (
    "airing_date",
    "airing_status",
    "episodes",
    "popularity",
    "rating",
    "overview",
    "image",
)


def page_offset(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def list_anime(session: AsyncSession, page: int, page_size: int) -> list[dict[str, Any]]:
    stmt = (
        select(*SUMMARY_COLUMNS)
        .order_by(Anime.id)
        .limit(page_size)
        .offset(page_offset(page, page_size))
    )
    result = await session.execute(stmt)
    return [dict(row._mapping) for row in result]


async def search_anime(
    session: AsyncSession, filters: SearchFilters, page: int, page_size: int
) -> list[dict[str, Any]]:
    """Summary rows matching every given filter (AND), one row per anime."""
    stmt = select(*SUMMARY_COLUMNS).distinct()
    conditions = []

    if filters.q:
        pattern = _like_pattern(filters.q.lower())
        conditions.append(
            or_(
                func.lower(Anime.title).like(pattern, escape="\\"),
                func.lower(Anime.id).like(pattern, escape="\\"),
            )
        )
    if filters.type:
        conditions.append(func.lower(Anime.type) == filters.type)
    if filters.year is not None:
        conditions.append(Anime.year == filters.year)
    if filters.tag:
        stmt = stmt.join(AnimeTag, AnimeTag.anime_id == Anime.id)
        conditions.append(func.lower(AnimeTag.tag_name) == filters.tag)

    stmt = (
        stmt.where(*conditions)
        .order_by(Anime.id)
        .limit(page_size)
        .offset(page_offset(page, page_size))
    )
    result = await session.execute(stmt)
    return [dict(row._mapping) for row in result]


async def get_anime_detail(session: AsyncSession, anime_id: str) -> dict[str, Any] | None:
    anime = await session.get(Anime, anime_id)
    if anime is None:
        return None

    result = await session.execute(
        select(AnimeTag.tag_name).where(AnimeTag.anime_id == anime_id).order_by(AnimeTag.tag_name)
    )
    tags = list(result.scalars())

    return {
        "id": anime.id,
        "title": anime.title,
        "year": anime.year,
        "type": anime.type,
        "image": anime.image,
        "url": anime.url,
        "episodes": anime.episodes,
        "audio": anime.audio,
        "duration": anime.duration,
        "watch_link": anime.watch_link,
        "rating": anime.rating,
        "overview": anime.overview,
        "tags": tags,
        "social": {
            "telegram": anime.telegram,
            "reddit": anime.reddit,
        },
    }


async def get_episode_links(session: AsyncSession, anime_id: str, number: int) -> EpisodeLinks | None:
    episode = await session.get(EpisodeLink, (anime_id, number))
    if episode is None:
        return None
    return EpisodeLinks.for_episode(number, episode.stream_url, episode.download_url)


async def upsert_anime(session: AsyncSession, record: dict[str, Any], tags: list[str]) -> None:
    """Insert an anime, or refresh the sync-owned fields of an existing one.

    Tags are only ever added; existing tags are left alone.
    """
    existing = await session.get(Anime, record["id"])
    if existing is None:
        session.add(Anime(**record))
    else:
        for field in SYNC_UPDATE_FIELDS:
            setattr(existing, field, record.get(field))
        existing.updated_at = func.now()

    result = await session.execute(
        select(AnimeTag.tag_name).where(AnimeTag.anime_id == record["id"])
    )
    known = set(result.scalars())
    for tag in tags:
        if tag not in known:
            session.add(AnimeTag(anime_id=record["id"], tag_name=tag))
            known.add(tag)
    await session.flush()
