"""Cache-then-fetch orchestration for a user's game library."""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from .cache_store import GameCacheStore
from .config import DEFAULT_CACHE_TTL_SECONDS
from .errors import NotFoundError, UpstreamDependencyError, UpstreamError
from .models import CacheEntry, DataSource, FormattedGame, LibraryDescriptor
from .steam_client import SteamClient

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheStatus(str, Enum):
    """Outcome of checking the cache for a Steam ID."""

    HIT = "hit"
    MISSING = "missing"
    EXPIRED = "expired"
    EMPTY = "empty"  # cached zero games; always re-fetched


def classify_entry(entry: Optional[CacheEntry], now: datetime, ttl: timedelta) -> CacheStatus:
    """Decide whether a cache entry can be served."""
    if entry is None:
        return CacheStatus.MISSING
    if now - entry.cached_at > ttl:
        return CacheStatus.EXPIRED
    if entry.game_count == 0:
        return CacheStatus.EMPTY
    return CacheStatus.HIT


def is_entry_fresh(entry: Optional[CacheEntry], now: datetime, ttl: timedelta) -> bool:
    return classify_entry(entry, now, ttl) is CacheStatus.HIT


class LibraryOrchestrator:
    """Serves game libraries from the cache, refreshing from Steam on miss."""

    def __init__(
        self,
        store: GameCacheStore,
        steam_client: SteamClient,
        ttl: timedelta = timedelta(seconds=DEFAULT_CACHE_TTL_SECONDS),
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize orchestrator.

        Args:
            store: Cache table
            steam_client: Upstream client used on miss
            ttl: Maximum age of a servable entry
            clock: Returns the current timezone-aware time
        """
        self.store = store
        self.steam_client = steam_client
        self.ttl = ttl
        self.clock = clock

    async def get_library(self, steam_id: str) -> LibraryDescriptor:
        """Return a descriptor for the user's library, fetching from Steam if needed."""
        now = self.clock()
        entry = await self.store.get(steam_id)
        status = classify_entry(entry, now, self.ttl)

        if entry is not None:
            logger.info(
                f"Cache entry found for {steam_id}. Cached at: {entry.cached_at.isoformat()}, "
                f"Game Count: {entry.game_count}, Status: {status.value}"
            )

        if status is CacheStatus.HIT:
            logger.info(f"Valid cache hit for {steam_id}.")
            return LibraryDescriptor(
                data_id=steam_id,
                source=DataSource.CACHE,
                game_count=entry.game_count,
                message=(
                    "Data retrieved from cache. Expires in approximately "
                    f"{int(self.ttl.total_seconds())} seconds from creation."
                ),
            )

        if status is CacheStatus.EMPTY:
            logger.info(f"Cached game count is 0 for {steam_id}. Forcing API refresh.")
        else:
            logger.info(f"Cache {status.value} for {steam_id}. Proceeding to API fetch.")

        try:
            games = await self.steam_client.get_formatted_games(steam_id)
        except UpstreamError as e:
            logger.error(f"Error fetching data from Steam API for {steam_id}: {e.message}")
            raise UpstreamDependencyError(
                f"Failed to fetch data from Steam API: {e.message}",
                upstream_status=e.upstream_status,
            ) from e

        # Empty results are stored too; classify_entry never serves them.
        stored_at = self.clock()
        logger.info(
            f"Storing {len(games)} games for {steam_id}. Timestamp: {stored_at.isoformat()}"
        )
        await self.store.upsert(steam_id, games, stored_at)

        return LibraryDescriptor(
            data_id=steam_id,
            source=DataSource.API,
            game_count=len(games),
            message=(
                "Fetched fresh data from Steam API and stored in cache. "
                f"Games found: {len(games)}."
            ),
        )

    async def get_cached_games(self, steam_id: str) -> List[FormattedGame]:
        """Return the cached games for a Steam ID regardless of age."""
        entry = await self.store.get(steam_id)
        if entry is None:
            logger.info(f"No cached data for {steam_id}")
            raise NotFoundError(
                f"Data not found for ID: {steam_id}. Fetch game data first."
            )
        logger.info(f"Loaded {entry.game_count} cached games for {steam_id}")
        return entry.games
