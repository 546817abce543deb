"""Game library service models."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from enum import Enum


class CamelModel(BaseModel):
    """Base for models that go over the wire with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OwnedGame(BaseModel):
    """Raw owned-game record as returned by IPlayerService/GetOwnedGames."""

    model_config = ConfigDict(frozen=True)

    appid: int
    name: str = ""
    playtime_forever: int = 0  # minutes
    playtime_windows_forever: int = 0
    playtime_mac_forever: int = 0
    playtime_linux_forever: int = 0
    rtime_last_played: int = 0  # Unix seconds, 0 = never
    img_icon_url: str = ""
    img_logo_url: str = ""


class FormattedGame(CamelModel):
    """Display-ready projection of an owned game."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    app_id: int
    name: str
    playtime_hours: str
    last_played: str
    icon_url: str


class CacheEntry(BaseModel):
    """One cached game list per Steam ID."""

    steam_id: str
    games: List[FormattedGame] = Field(default_factory=list)
    cached_at: datetime

    @property
    def game_count(self) -> int:
        return len(self.games)


class UserProfile(CamelModel):
    """Player summary, fetched fresh on every request."""

    steam_id: str
    persona_name: str
    profile_url: str
    avatar_icon_url: str
    avatar_medium_url: str
    avatar_full_url: str
    persona_state: int  # 0 offline, 1 online, 2 busy, ...
    visibility_state: int  # 1 private, 3 public
    real_name: Optional[str] = None
    last_logoff: Optional[datetime] = None
    time_created: Optional[datetime] = None


class DataSource(str, Enum):
    """Where a library descriptor's data came from."""

    CACHE = "cache"
    API = "api"


class LibraryDescriptor(CamelModel):
    """Result of a /games request."""

    data_id: str
    source: DataSource
    game_count: int
    message: str


class PromptMessages(BaseModel):
    """System and user messages sent to the text-generation API."""

    system: str
    user: str


class ModelInfo(CamelModel):
    """Configured text-generation model."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    model_name: str
    version: str
