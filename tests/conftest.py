"""Pytest configuration and fixtures for the game library service tests."""

from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

import pytest
import pytest_asyncio

from services.game_library.src.cache_store import GameCacheStore
from services.game_library.src.config import (
    CacheConfig,
    NarrativeConfig,
    ServiceConfig,
    SteamConfig,
)
from services.game_library.src.models import FormattedGame
from shared.llm_provider.base import BaseLLMProvider, LLMStreamChunk

STEAM_ID = "76561197960435530"
OTHER_STEAM_ID = "76561198000000001"


def make_game(name: str, hours: str, app_id: int = 10) -> FormattedGame:
    return FormattedGame(
        app_id=app_id,
        name=name,
        playtime_hours=hours,
        last_played="2024-01-01",
        icon_url="No Icon URL Available",
    )


class FakeSteamClient:
    """Stands in for SteamClient; returns canned games or raises."""

    def __init__(self, games: Optional[List[FormattedGame]] = None, error: Optional[Exception] = None):
        self.games = games if games is not None else []
        self.error = error
        self.profile = None
        self.calls = 0
        self.closed = False

    async def get_formatted_games(self, steam_id: str) -> List[FormattedGame]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.games)

    async def fetch_user_profile(self, steam_id: str):
        if self.error is not None:
            raise self.error
        return self.profile

    async def aclose(self):
        self.closed = True


class FakeLLMProvider(BaseLLMProvider):
    """Streams canned chunks; optionally raises before or after the first one."""

    def __init__(self, chunks: List[str], error: Optional[Exception] = None, fail_after: int = 0):
        super().__init__(api_key="test", model="fake-model")
        self.chunks = chunks
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    async def stream(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncIterator[LLMStreamChunk]:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "temperature": temperature})
        for index, text in enumerate(self.chunks):
            if self.error is not None and index == self.fail_after:
                raise self.error
            yield LLMStreamChunk(text=text)
        if self.error is not None and self.fail_after >= len(self.chunks):
            raise self.error
        yield LLMStreamChunk(text="", done=True)


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def steam_config():
    return SteamConfig(api_key="test-steam-key", base_url="https://steam.test")


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def service_config(database_url):
    return ServiceConfig(
        steam=SteamConfig(api_key="test-steam-key", base_url="https://steam.test"),
        narrative=NarrativeConfig(api_key="test-openai-key", model="test-model", model_version="v-test"),
        cache=CacheConfig(database_url=database_url),
        log_level="WARNING",
    )


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 4, 13, 12, 0, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def store(database_url):
    cache_store = GameCacheStore(database_url)
    await cache_store.init_db()
    yield cache_store
    await cache_store.dispose()
