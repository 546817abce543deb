"""Persistent game-list cache, one row per Steam ID."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError

from .errors import CacheStoreError
from .models import CacheEntry, FormattedGame

logger = logging.getLogger(__name__)

Base = declarative_base()

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class SteamGamesCacheDB(Base):
    """Cached formatted game list database model."""

    __tablename__ = "steam_games_cache"

    steam_id = Column(String, primary_key=True)
    game_data = Column(JSON, nullable=False)  # list of camelCase FormattedGame dicts
    cached_at = Column(DateTime, nullable=False)  # naive UTC


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GameCacheStore:
    """Point lookup and upsert over the steam_games_cache table."""

    def __init__(self, database_url: str):
        """Initialize cache store."""
        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=False)
        self.SessionLocal = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_db(self):
        """Initialize database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        """Close pooled connections."""
        await self.engine.dispose()

    async def get(self, steam_id: str) -> Optional[CacheEntry]:
        """Get the cache entry for a Steam ID, or None."""
        try:
            async with self.SessionLocal() as session:
                row = await session.get(SteamGamesCacheDB, steam_id)
                if row is None:
                    return None
                game_data, cached_at = row.game_data, row.cached_at
        except SQLAlchemyError as e:
            logger.error(f"Failed to read cache entry for {steam_id}: {e}")
            raise CacheStoreError("Failed to read cached game data.") from e

        if not isinstance(game_data, list):
            logger.error(f"Cached game data for {steam_id} is not a list")
            raise CacheStoreError("Failed to process stored game data. Data might be corrupted.")
        try:
            games = [FormattedGame.model_validate(item) for item in game_data]
        except ValidationError as e:
            logger.error(f"Cached game data for {steam_id} failed validation: {e.error_count()} errors")
            raise CacheStoreError(
                "Failed to process stored game data. Data might be corrupted."
            ) from e

        return CacheEntry(steam_id=steam_id, games=games, cached_at=_as_utc(cached_at))

    async def upsert(
        self,
        steam_id: str,
        games: Sequence[FormattedGame],
        cached_at: datetime
    ) -> None:
        """Insert or replace the entry for a Steam ID. Last write wins."""
        game_data = [game.model_dump(by_alias=True) for game in games]
        stamp = _to_naive_utc(cached_at)

        try:
            async with self.SessionLocal() as session:
                insert = _UPSERT_INSERTS.get(self.engine.dialect.name)
                if insert is not None:
                    stmt = insert(SteamGamesCacheDB).values(
                        steam_id=steam_id, game_data=game_data, cached_at=stamp
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[SteamGamesCacheDB.steam_id],
                        set_={
                            "game_data": stmt.excluded.game_data,
                            "cached_at": stmt.excluded.cached_at,
                        },
                    )
                    await session.execute(stmt)
                else:
                    row = await session.get(SteamGamesCacheDB, steam_id)
                    if row is None:
                        session.add(SteamGamesCacheDB(
                            steam_id=steam_id, game_data=game_data, cached_at=stamp
                        ))
                    else:
                        row.game_data = game_data
                        row.cached_at = stamp
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store cache entry for {steam_id}: {e}")
            raise CacheStoreError("Failed to store game data in cache.") from e
