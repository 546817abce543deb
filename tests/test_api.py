"""Tests for the HTTP surface of the game library service."""

from datetime import datetime, timezone

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from conftest import STEAM_ID, FakeLLMProvider, FakeSteamClient, make_game
from services.game_library.src.api import create_app
from services.game_library.src.cache_store import GameCacheStore
from services.game_library.src.errors import (
    NotFoundError,
    UpstreamAuthError,
    UpstreamShapeError,
)
from services.game_library.src.models import UserProfile

REQUEST = httpx.Request("POST", "https://llm.test/chat/completions")


@pytest.fixture
def steam():
    return FakeSteamClient(games=[
        make_game("Portal 2", "12.5 hours", app_id=620),
        make_game("Dota 2", "0.0 hours", app_id=570),
    ])


@pytest.fixture
def llm():
    return FakeLLMProvider(["You ", "clearly ", "love ", "puzzles."])


@pytest.fixture
def client(service_config, steam, llm):
    app = create_app(
        service_config,
        store=GameCacheStore(service_config.cache.database_url),
        steam_client=steam,
        llm_provider=llm,
    )
    with TestClient(app) as test_client:
        yield test_client


def build_client(config, steam, llm=None):
    app = create_app(
        config,
        store=GameCacheStore(config.cache.database_url),
        steam_client=steam,
        llm_provider=llm,
    )
    return TestClient(app)


class TestGamesEndpoint:
    def test_invalid_id_is_rejected(self, client, steam):
        resp = client.get("/api/games/12345")
        assert resp.status_code == 400
        assert "SteamID" in resp.json()["detail"]
        assert steam.calls == 0

    def test_first_call_fetches_then_cache_serves(self, client, steam):
        first = client.get(f"/api/games/{STEAM_ID}")
        assert first.status_code == 200
        assert first.json() == {
            "dataId": STEAM_ID,
            "source": "api",
            "gameCount": 2,
            "message": "Fetched fresh data from Steam API and stored in cache. Games found: 2.",
        }

        second = client.get(f"/api/games/{STEAM_ID}")
        assert second.status_code == 200
        assert second.json()["source"] == "cache"
        assert second.json()["gameCount"] == 2
        assert steam.calls == 1

    def test_empty_library_is_refetched(self, client, steam):
        steam.games = []
        assert client.get(f"/api/games/{STEAM_ID}").json()["source"] == "api"
        assert client.get(f"/api/games/{STEAM_ID}").json()["source"] == "api"
        assert steam.calls == 2

    def test_upstream_failure_is_bad_gateway(self, client, steam):
        steam.error = UpstreamAuthError("Steam API request failed with status 401. Check API key or permissions.")
        resp = client.get(f"/api/games/{STEAM_ID}")
        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("Failed to fetch data from Steam API:")

    def test_missing_steam_key(self, service_config, steam):
        service_config.steam.api_key = None
        with build_client(service_config, steam) as client:
            resp = client.get(f"/api/games/{STEAM_ID}")
        assert resp.status_code == 500
        assert "API key missing" in resp.json()["detail"]
        assert steam.calls == 0

    def test_unexpected_failure_is_internal_error(self, client, steam):
        steam.error = RuntimeError("boom")
        resp = client.get(f"/api/games/{STEAM_ID}")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "An internal server error occurred."}


class TestUserEndpoint:
    def test_returns_profile(self, client, steam):
        steam.profile = UserProfile(
            steam_id=STEAM_ID,
            persona_name="Gaben",
            profile_url="https://steamcommunity.com/id/gaben/",
            avatar_icon_url="https://avatars.test/s.jpg",
            avatar_medium_url="https://avatars.test/m.jpg",
            avatar_full_url="https://avatars.test/f.jpg",
            persona_state=1,
            visibility_state=3,
            time_created=datetime(2003, 9, 12, 22, 59, 49, tzinfo=timezone.utc),
        )
        resp = client.get(f"/api/user/{STEAM_ID}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["steamId"] == STEAM_ID
        assert body["personaName"] == "Gaben"
        assert body["avatarFullUrl"] == "https://avatars.test/f.jpg"
        assert body["visibilityState"] == 3
        assert body["realName"] is None
        assert body["timeCreated"].startswith("2003-09-12T22:59:49")

    def test_invalid_id(self, client):
        assert client.get("/api/user/not-a-steam-id").status_code == 400

    def test_not_found(self, client, steam):
        steam.error = NotFoundError(f"User not found for Steam ID: {STEAM_ID}")
        resp = client.get(f"/api/user/{STEAM_ID}")
        assert resp.status_code == 404
        assert resp.json()["detail"] == f"User not found for Steam ID: {STEAM_ID}"

    def test_other_upstream_failure(self, client, steam):
        steam.error = UpstreamShapeError()
        assert client.get(f"/api/user/{STEAM_ID}").status_code == 502


class TestAnalyzeEndpoint:
    def test_requires_cached_data(self, client, llm):
        resp = client.get(f"/api/analyze/{STEAM_ID}")
        assert resp.status_code == 404
        assert "Fetch game data first" in resp.json()["detail"]
        assert llm.calls == []

    def test_streams_commentary(self, client, llm):
        client.get(f"/api/games/{STEAM_ID}")
        resp = client.get(f"/api/analyze/{STEAM_ID}")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == "You clearly love puzzles."
        assert len(llm.calls) == 1
        assert "- Portal 2: 12.5 hours" in llm.calls[0]["prompt"]
        assert "Dota 2" not in llm.calls[0]["prompt"]
        assert "Write the whole response in Chinese." in llm.calls[0]["system_prompt"]

    def test_streams_chunk_by_chunk(self, client):
        client.get(f"/api/games/{STEAM_ID}")
        with client.stream("GET", f"/api/analyze/{STEAM_ID}") as resp:
            assert resp.status_code == 200
            text = "".join(resp.iter_text())
        assert text == "You clearly love puzzles."

    def test_invalid_id(self, client):
        assert client.get("/api/analyze/abc").status_code == 400

    def test_output_language_is_configurable(self, service_config, steam, llm):
        service_config.narrative.output_language = "English"
        with build_client(service_config, steam, llm) as client:
            client.get(f"/api/games/{STEAM_ID}")
            assert client.get(f"/api/analyze/{STEAM_ID}").status_code == 200
        assert "Write the whole response in English." in llm.calls[0]["system_prompt"]

    def test_missing_llm_key(self, service_config, steam):
        service_config.narrative.api_key = None
        with build_client(service_config, steam, llm=None) as client:
            client.get(f"/api/games/{STEAM_ID}")
            resp = client.get(f"/api/analyze/{STEAM_ID}")
        assert resp.status_code == 500
        assert "OpenAI API key missing" in resp.json()["detail"]

    def test_ai_service_error_is_bad_gateway(self, service_config, steam):
        error = openai.APIStatusError(
            "model overloaded", response=httpx.Response(503, request=REQUEST), body=None
        )
        with build_client(service_config, steam, FakeLLMProvider(["x"], error=error)) as client:
            client.get(f"/api/games/{STEAM_ID}")
            resp = client.get(f"/api/analyze/{STEAM_ID}")
        assert resp.status_code == 502
        assert "model overloaded" in resp.json()["detail"]

    def test_ai_network_error_is_gateway_timeout(self, service_config, steam):
        error = openai.APITimeoutError(request=REQUEST)
        with build_client(service_config, steam, FakeLLMProvider(["x"], error=error)) as client:
            client.get(f"/api/games/{STEAM_ID}")
            resp = client.get(f"/api/analyze/{STEAM_ID}")
        assert resp.status_code == 504
        assert resp.json()["detail"] == "Network error connecting to AI service."

    def test_unexpected_error_is_internal(self, service_config, steam):
        with build_client(service_config, steam, FakeLLMProvider(["x"], error=KeyError("oops"))) as client:
            client.get(f"/api/games/{STEAM_ID}")
            resp = client.get(f"/api/analyze/{STEAM_ID}")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "An internal server error occurred during analysis."


class TestMiscEndpoints:
    def test_model(self, client):
        resp = client.get("/api/model")
        assert resp.status_code == 200
        assert resp.json() == {"modelName": "test-model", "version": "v-test"}

    def test_index(self, client):
        resp = client.get("/api/")
        assert resp.status_code == 200
        assert "/api/games/" in resp.text

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_shutdown_closes_steam_client(self, service_config, steam):
        with build_client(service_config, steam):
            pass
        assert steam.closed is True
