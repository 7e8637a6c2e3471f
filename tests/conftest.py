"""Shared fixtures for the catalog API test suite."""

import httpx
import pytest

import animecatalog.catalog.database as database_mod
import animecatalog.kvstore.factory as kv_factory_mod
from animecatalog.catalog.database import close_db, init_db, session_scope
from animecatalog.catalog.models import Anime, AnimeTag, EpisodeLink
from animecatalog.config.settings import get_settings
from animecatalog.security.signature import compute_signature

ALLOWED_ORIGIN = "https://anime.example"
API_SECRET = "s3cr3t"
CLIENT_IP = "203.0.113.7"

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0",
    "CF-Connecting-IP": CLIENT_IP,
}

FRIEREN_ID = "frieren-beyond-journeys-end-154587"


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(ALLOWED_ORIGIN="https://x.example", PAGE_SIZE=2)
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Fresh key-value store and database engine for every test."""
    monkeypatch.setattr(kv_factory_mod, "_store", None)
    monkeypatch.setattr(database_mod, "_engine", None)
    monkeypatch.setattr(database_mod, "_session_maker", None)
    yield


def seed_rows() -> list:
    return [
        Anime(
            id=FRIEREN_ID,
            title="Frieren: Beyond Journey's End",
            year=2023,
            type="TV",
            image="https://img.example/frieren.jpg",
            episodes=28,
            audio="SUB",
            duration="24 min",
            rating=91,
            overview="An elf mage outlives her party.",
            telegram="https://t.me/frieren",
            reddit="https://reddit.com/r/Frieren",
        ),
        Anime(id="one-piece-21", title="ONE PIECE", year=1999, type="TV", rating=88),
        Anime(id="your-name-21519", title="Your Name.", year=2016, type="MOVIE", rating=85),
        AnimeTag(anime_id=FRIEREN_ID, tag_name="Adventure"),
        AnimeTag(anime_id=FRIEREN_ID, tag_name="Fantasy"),
        AnimeTag(anime_id="one-piece-21", tag_name="Adventure"),
        AnimeTag(anime_id="one-piece-21", tag_name="Action"),
        AnimeTag(anime_id="your-name-21519", tag_name="Romance"),
        EpisodeLink(
            anime_id=FRIEREN_ID,
            episode_number=5,
            stream_url="https://stream.example/frieren/5",
            download_url="https://dl.example/frieren/5",
        ),
    ]


@pytest.fixture
async def catalog_db(override_settings, tmp_path):
    """SQLite catalog in a temp file, seeded with three anime."""
    override_settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        ALLOWED_ORIGIN=ALLOWED_ORIGIN,
        API_SECRET=API_SECRET,
        KV_STORE_BACKEND="memory",
    )
    await init_db()
    async with session_scope() as session:
        session.add_all(seed_rows())
    yield
    await close_db()


@pytest.fixture
async def app_client(catalog_db):
    """httpx AsyncClient wired to the FastAPI app, sending browser-like headers."""
    from animecatalog.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test", headers=BROWSER_HEADERS
    ) as client:
        yield client


def signed_query(resource_id: str, number: int, ts: int, secret: str = API_SECRET) -> dict:
    """Query params for an episode link signed at ts."""
    return {"ts": str(ts), "sig": compute_signature(resource_id, number, str(ts), secret)}
