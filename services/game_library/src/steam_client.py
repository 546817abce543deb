"""Steam Web API client: owned games and player summaries."""

import logging
import unicodedata
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from .config import SteamConfig
from .errors import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamNetworkError,
    UpstreamShapeError,
)
from .models import FormattedGame, OwnedGame, UserProfile

logger = logging.getLogger(__name__)

ICON_URL_TEMPLATE = (
    "https://media.steampowered.com/steamcommunity/public/images/apps/{appid}/{icon}.jpg"
)
NO_ICON = "No Icon URL Available"
NEVER_PLAYED = "Never"


# ---------- Formatting (pure) ----------

def format_hours(minutes: int) -> str:
    """125 -> "2.1 hours"; exact halves round up (135 -> "2.3 hours")."""
    hours = Decimal(minutes / 60).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{hours} hours"


def format_last_played(timestamp: int) -> str:
    """Unix seconds -> ISO date in UTC; 0 means the game was never launched."""
    if timestamp <= 0:
        return NEVER_PLAYED
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return "Unknown"


def format_icon_url(appid: int, icon_hash: str) -> str:
    if not icon_hash:
        return NO_ICON
    return ICON_URL_TEMPLATE.format(appid=appid, icon=icon_hash)


def format_games(games: Sequence[OwnedGame]) -> List[FormattedGame]:
    """Project raw owned games into display records, keeping input order."""
    return [
        FormattedGame(
            app_id=game.appid,
            name=game.name,
            playtime_hours=format_hours(game.playtime_forever),
            last_played=format_last_played(game.rtime_last_played),
            icon_url=format_icon_url(game.appid, game.img_icon_url),
        )
        for game in games
    ]


def _fold_name(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _name_sort_key(game: OwnedGame):
    # accents and case ignored; raw name keeps ties deterministic
    return (_fold_name(game.name), game.name)


def _epoch_to_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# ---------- Client ----------

class SteamClient:
    """Async client for the two Steam Web API calls the service needs."""

    OWNED_GAMES_PATH = "/IPlayerService/GetOwnedGames/v1/"
    PLAYER_SUMMARIES_PATH = "/ISteamUser/GetPlayerSummaries/v2/"

    def __init__(self, config: SteamConfig, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize Steam client.

        Args:
            config: Steam API settings (key, base URL, timeout)
            http_client: Optional shared client; one is created (and owned) if omitted
        """
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def aclose(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.http_client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    def _check_request(self, steam_id: str):
        if not self.config.api_key:
            raise ConfigurationError("Server configuration error: API key missing.")
        if not steam_id:
            raise InvalidInputError("A Steam ID is required.")

    async def _get_json(self, path: str, params: Dict[str, str], label: str) -> Any:
        """GET a Steam endpoint and decode JSON, translating failures into typed errors."""
        query = {"key": self.config.api_key, "format": "json", **params}
        try:
            response = await self.http_client.get(self._url(path), params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            # The request URL carries the API key, so it is never logged.
            logger.error(f"Steam API {label} request failed with status {status}")
            if status in (401, 403):
                raise UpstreamAuthError(
                    f"Steam API request failed with status {status}. Check API key or permissions.",
                    upstream_status=status,
                ) from e
            raise UpstreamError(
                f"Steam API request failed with status {status}.",
                upstream_status=status,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"No response received from Steam API ({label}): {type(e).__name__}")
            raise UpstreamNetworkError(
                f"No response received from Steam API ({type(e).__name__})."
            ) from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Steam API {label} returned a non-JSON body")
            raise UpstreamShapeError("Unexpected response structure from Steam API.") from e

    async def fetch_owned_games(self, steam_id: str) -> List[OwnedGame]:
        """
        Fetch the raw owned-games list, sorted by name.

        An empty ``response`` object (private profile or unknown ID) yields
        an empty list rather than an error.
        """
        self._check_request(steam_id)
        logger.info(f"Fetching games for Steam ID: {steam_id}...")

        data = await self._get_json(
            self.OWNED_GAMES_PATH,
            {
                "steamid": steam_id,
                "include_appinfo": "true",
                "include_played_free_games": "true",
            },
            "owned games",
        )

        payload = data.get("response") if isinstance(data, dict) else None
        if not isinstance(payload, dict):
            logger.error("Unexpected response structure from Steam API (owned games)")
            raise UpstreamShapeError("Unexpected response structure from Steam API.")

        raw_games = payload.get("games")
        if raw_games is None:
            if not payload or payload == {"game_count": 0}:
                logger.warning(
                    f"Received an empty response for Steam ID {steam_id}. "
                    "Profile might be private or ID/key invalid."
                )
                return []
            logger.error("Unexpected response structure from Steam API (owned games)")
            raise UpstreamShapeError("Unexpected response structure from Steam API.")

        if not isinstance(raw_games, list):
            raise UpstreamShapeError("Unexpected response structure from Steam API.")

        try:
            games = [OwnedGame.model_validate(raw) for raw in raw_games]
        except ValidationError as e:
            logger.error(f"Steam API returned malformed game records: {e.error_count()} errors")
            raise UpstreamShapeError("Unexpected game record structure from Steam API.") from e

        games.sort(key=_name_sort_key)
        logger.info(
            f"Successfully fetched {payload.get('game_count', len(games))} games for Steam ID: {steam_id}."
        )
        return games

    async def get_formatted_games(self, steam_id: str) -> List[FormattedGame]:
        """Fetch and format owned games for a Steam ID."""
        games = await self.fetch_owned_games(steam_id)
        formatted = format_games(games)
        logger.info(f"Successfully formatted {len(formatted)} games for Steam ID {steam_id}.")
        return formatted

    async def fetch_user_profile(self, steam_id: str) -> UserProfile:
        """Fetch the player summary for a single Steam ID."""
        self._check_request(steam_id)
        logger.info(f"Fetching user info for Steam ID: {steam_id}...")

        data = await self._get_json(
            self.PLAYER_SUMMARIES_PATH,
            {"steamids": steam_id},  # plural even for one ID
            "user info",
        )

        payload = data.get("response") if isinstance(data, dict) else None
        players = payload.get("players") if isinstance(payload, dict) else None
        if not isinstance(players, list):
            logger.error("Unexpected user info response structure from Steam API")
            raise UpstreamShapeError("Unexpected user info response structure from Steam API.")

        if not players:
            logger.warning(f"No player data found for Steam ID {steam_id}.")
            raise NotFoundError(f"User not found for Steam ID: {steam_id}")

        raw = players[0]
        try:
            profile = UserProfile(
                steam_id=raw["steamid"],
                persona_name=raw["personaname"],
                profile_url=raw["profileurl"],
                avatar_icon_url=raw["avatar"],
                avatar_medium_url=raw["avatarmedium"],
                avatar_full_url=raw["avatarfull"],
                persona_state=raw.get("personastate", 0),
                visibility_state=raw.get("communityvisibilitystate", 1),
                real_name=raw.get("realname"),
                last_logoff=_epoch_to_datetime(raw.get("lastlogoff")),
                time_created=_epoch_to_datetime(raw.get("timecreated")),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.error(f"Malformed player record from Steam API: {type(e).__name__}")
            raise UpstreamShapeError("Unexpected user info response structure from Steam API.") from e

        logger.info(f"Successfully fetched user info for {profile.persona_name} (Steam ID: {steam_id}).")
        return profile
