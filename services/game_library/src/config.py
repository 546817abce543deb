"""Configuration for the game library service."""

import os
from typing import List, Optional
from pydantic import BaseModel, Field


DEFAULT_CACHE_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days
DEFAULT_OUTPUT_LANGUAGE = "Chinese"


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


class SteamConfig(BaseModel):
    """Steam Web API settings."""

    api_key: Optional[str] = None
    base_url: str = "https://api.steampowered.com"
    timeout: Optional[float] = None  # None means no client-side timeout

    @classmethod
    def from_env(cls) -> "SteamConfig":
        return cls(
            api_key=os.getenv("STEAM_API_KEY") or None,
            base_url=os.getenv("STEAM_API_BASE_URL", "https://api.steampowered.com"),
            timeout=_env_float("STEAM_API_TIMEOUT"),
        )


class NarrativeConfig(BaseModel):
    """Text-generation endpoint used for the play-habit commentary."""

    api_key: Optional[str] = None
    model: str = "deepseek-r1-distill-qwen-32b-250120"
    base_url: str = "https://ark.cn-beijing.volces.com/api/v3"
    temperature: float = 0.7
    timeout: float = 300.0
    model_version: str = "v1.2.0413"
    output_language: str = DEFAULT_OUTPUT_LANGUAGE

    @classmethod
    def from_env(cls) -> "NarrativeConfig":
        return cls(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("LLM_MODEL", "deepseek-r1-distill-qwen-32b-250120"),
            base_url=os.getenv("LLM_BASE_URL", "https://ark.cn-beijing.volces.com/api/v3"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            timeout=float(os.getenv("LLM_TIMEOUT", "300")),
            model_version=os.getenv("MODEL_VERSION", "v1.2.0413"),
            output_language=os.getenv("LLM_OUTPUT_LANGUAGE", DEFAULT_OUTPUT_LANGUAGE),
        )


class CacheConfig(BaseModel):
    """Cache table location and freshness window."""

    database_url: str = "sqlite+aiosqlite:///./game_library.db"
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./game_library.db"),
            ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS))),
        )


class ServiceConfig(BaseModel):
    """Top-level configuration passed into create_app()."""

    steam: SteamConfig = Field(default_factory=SteamConfig)
    narrative: NarrativeConfig = Field(default_factory=NarrativeConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Read every setting from the environment."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            steam=SteamConfig.from_env(),
            narrative=NarrativeConfig.from_env(),
            cache=CacheConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
        )
