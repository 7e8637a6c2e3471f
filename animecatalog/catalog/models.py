"""Catalog ORM models."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    pass


class Anime(Base):
    __tablename__ = "anime"

    id: Mapped[str] = mapped_column(String, primary_key=True)  # "<slug>-<anilist id>"
    title: Mapped[str] = mapped_column(String)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[str | None] = mapped_column(String, nullable=True)
    image: Mapped[str | None] = mapped_column(String, nullable=True)
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    episodes: Mapped[int] = mapped_column(Integer, default=0)
    audio: Mapped[str | None] = mapped_column(String, nullable=True)
    dubbed_languages: Mapped[str | None] = mapped_column(String, nullable=True)
    duration: Mapped[str | None] = mapped_column(String, nullable=True)
    watch_link: Mapped[str | None] = mapped_column(String, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    popularity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    studio: Mapped[str | None] = mapped_column(String, nullable=True)
    top_genre_rank: Mapped[str | None] = mapped_column(String, nullable=True)
    airing_status: Mapped[str | None] = mapped_column(String, nullable=True)  # AIRING | COMPLETED | DISMISSED
    airing_date: Mapped[str | None] = mapped_column(String, nullable=True)  # YYYY-MM-DD
    total_seasons: Mapped[int] = mapped_column(Integer, default=1)
    telegram: Mapped[str | None] = mapped_column(String, nullable=True)
    reddit: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AnimeTag(Base):
    __tablename__ = "anime_tags"

    anime_id: Mapped[str] = mapped_column(ForeignKey("anime.id"), primary_key=True)
    tag_name: Mapped[str] = mapped_column(String, primary_key=True)


class EpisodeLink(Base):
    __tablename__ = "episode_links"

    anime_id: Mapped[str] = mapped_column(ForeignKey("anime.id"), primary_key=True)
    episode_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    stream_url: Mapped[str | None] = mapped_column(String, nullable=True)
    download_url: Mapped[str | None] = mapped_column(String, nullable=True)


@dataclass
class EpisodeLinks:
    """Resolved links for one episode.

    Serialized as ``{stream_key: stream_url, download_key: download_url}``,
    e.g. ``{"E5": ..., "D5": ...}``.
    """

    stream_key: str
    stream_url: str | None
    download_key: str
    download_url: str | None

    @classmethod
    def for_episode(cls, number: int, stream_url: str | None, download_url: str | None) -> "EpisodeLinks":
        return cls(
            stream_key=f"E{number}",
            stream_url=stream_url,
            download_key=f"D{number}",
            download_url=download_url,
        )

    def to_dict(self) -> dict[str, str | None]:
        return {self.stream_key: self.stream_url, self.download_key: self.download_url}


@dataclass
class SearchFilters:
    """Normalized /api/search filters. Empty strings mean "not given"."""

    q: str = ""
    type: str = ""
    year: int | None = None
    tag: str = ""

    @property
    def empty(self) -> bool:
        return not self.q and not self.type and self.year is None and not self.tag
