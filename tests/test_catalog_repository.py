"""Tests for animecatalog/catalog/repository.py — catalog queries."""

import pytest

from animecatalog.catalog import repository
from animecatalog.catalog.database import session_scope
from animecatalog.catalog.models import EpisodeLinks, SearchFilters
from tests.conftest import FRIEREN_ID

pytestmark = pytest.mark.usefixtures("catalog_db")


class TestListAnime:

    async def test_first_page(self):
        async with session_scope() as session:
            rows = await repository.list_anime(session, page=1, page_size=20)
        assert [r["id"] for r in rows] == [FRIEREN_ID, "one-piece-21", "your-name-21519"]
        assert set(rows[0]) == {"id", "title", "year", "type", "image", "duration", "rating"}

    async def test_pagination(self):
        async with session_scope() as session:
            page2 = await repository.list_anime(session, page=2, page_size=2)
        assert [r["id"] for r in page2] == ["your-name-21519"]

    async def test_page_past_end(self):
        async with session_scope() as session:
            assert await repository.list_anime(session, page=9, page_size=20) == []


class TestSearchAnime:

    async def search(self, **kwargs):
        async with session_scope() as session:
            rows = await repository.search_anime(session, SearchFilters(**kwargs), page=1, page_size=20)
        return [r["id"] for r in rows]

    async def test_title_substring_case_insensitive(self):
        assert await self.search(q="FRIEREN") == [FRIEREN_ID]

    async def test_matches_id(self):
        assert await self.search(q="21519") == ["your-name-21519"]

    async def test_like_wildcards_are_literal(self):
        assert await self.search(q="%") == []

    async def test_type(self):
        assert await self.search(type="movie") == ["your-name-21519"]

    async def test_year(self):
        assert await self.search(year=1999) == ["one-piece-21"]

    async def test_tag(self):
        assert await self.search(tag="adventure") == [FRIEREN_ID, "one-piece-21"]

    async def test_filters_combine(self):
        assert await self.search(tag="adventure", year=2023) == [FRIEREN_ID]

    async def test_type_tv(self):
        assert await self.search(type="tv") == [FRIEREN_ID, "one-piece-21"]

    async def test_empty_filters(self):
        assert SearchFilters().empty is True
        assert SearchFilters(year=2020).empty is False


class TestAnimeDetail:

    async def test_found(self):
        async with session_scope() as session:
            detail = await repository.get_anime_detail(session, FRIEREN_ID)
        assert detail["title"] == "Frieren: Beyond Journey's End"
        assert detail["tags"] == ["Adventure", "Fantasy"]
        assert detail["social"] == {
            "telegram": "https://t.me/frieren",
            "reddit": "https://reddit.com/r/Frieren",
        }

    async def test_missing(self):
        async with session_scope() as session:
            assert await repository.get_anime_detail(session, "nope-1") is None


class TestEpisodeLinks:

    async def test_found(self):
        async with session_scope() as session:
            links = await repository.get_episode_links(session, FRIEREN_ID, 5)
        assert links == EpisodeLinks(
            stream_key="E5",
            stream_url="https://stream.example/frieren/5",
            download_key="D5",
            download_url="https://dl.example/frieren/5",
        )
        assert links.to_dict() == {
            "E5": "https://stream.example/frieren/5",
            "D5": "https://dl.example/frieren/5",
        }

    async def test_missing_episode(self):
        async with session_scope() as session:
            assert await repository.get_episode_links(session, FRIEREN_ID, 6) is None


class TestUpsertAnime:

    async def test_insert_new(self):
        record = {"id": "dandadan-171018", "title": "Dan Da Dan", "year": 2024, "type": "TV"}
        async with session_scope() as session:
            await repository.upsert_anime(session, record, ["Comedy", "Action"])
        async with session_scope() as session:
            detail = await repository.get_anime_detail(session, "dandadan-171018")
        assert detail["title"] == "Dan Da Dan"
        assert detail["tags"] == ["Action", "Comedy"]

    async def test_update_only_refreshes_sync_fields(self):
        record = {
            "id": FRIEREN_ID,
            "title": "Renamed",
            "rating": 95,
            "episodes": 29,
            "overview": "Updated.",
        }
        async with session_scope() as session:
            await repository.upsert_anime(session, record, ["Fantasy", "Drama"])
        async with session_scope() as session:
            detail = await repository.get_anime_detail(session, FRIEREN_ID)
        assert detail["title"] == "Frieren: Beyond Journey's End"
        assert detail["rating"] == 95
        assert detail["episodes"] == 29
        assert detail["overview"] == "Updated."
        assert detail["tags"] == ["Adventure", "Drama", "Fantasy"]
