"""Game library service API."""

import logging
from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from shared.llm_provider import BaseLLMProvider, OpenAIProvider
from shared.logging import setup_logger

from .cache_store import GameCacheStore
from .config import ServiceConfig
from .errors import ConfigurationError, InternalError, LibraryServiceError
from .models import LibraryDescriptor, ModelInfo, UserProfile
from .narrative import NarrativeGenerator, build_prompt
from .orchestrator import LibraryOrchestrator
from .steam_client import SteamClient
from .validation import require_steam_id64

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


async def library_error_handler(request: Request, exc: LibraryServiceError) -> JSONResponse:
    """Render any service error as its status code and a detail message."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _require_steam_key(request: Request):
    if not request.app.state.config.steam.api_key:
        logger.error("STEAM_API_KEY environment variable not set.")
        raise ConfigurationError("Server configuration error: API key missing.")


@router.get("/", response_class=PlainTextResponse)
async def index():
    """Usage hint."""
    return "Hello! Use /api/games/{steamid} to get game data."


@router.get("/games/{steam_id}", response_model=LibraryDescriptor)
async def get_games(steam_id: str, request: Request):
    """Return a descriptor for the user's game library, caching on the way."""
    require_steam_id64(steam_id)
    _require_steam_key(request)

    orchestrator: LibraryOrchestrator = request.app.state.orchestrator
    try:
        return await orchestrator.get_library(steam_id)
    except LibraryServiceError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error processing request for {steam_id}: {e}", exc_info=True)
        raise InternalError("An internal server error occurred.") from e


@router.get("/user/{steam_id}", response_model=UserProfile)
async def get_user(steam_id: str, request: Request):
    """Return the user's profile, fetched fresh from Steam."""
    require_steam_id64(steam_id)
    _require_steam_key(request)

    steam_client: SteamClient = request.app.state.steam_client
    try:
        return await steam_client.fetch_user_profile(steam_id)
    except LibraryServiceError as e:
        logger.error(f"Error fetching user info for Steam ID {steam_id}: {e.message}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error fetching user info for {steam_id}: {e}", exc_info=True)
        raise InternalError("An internal server error occurred.") from e


@router.get("/analyze/{data_id}")
async def analyze(data_id: str, request: Request):
    """Stream commentary about a previously fetched game library."""
    require_steam_id64(data_id)

    narrator: Optional[NarrativeGenerator] = request.app.state.narrator
    if narrator is None:
        logger.error("OPENAI_API_KEY environment variable not set.")
        raise ConfigurationError("Server configuration error: OpenAI API key missing.")

    orchestrator: LibraryOrchestrator = request.app.state.orchestrator
    try:
        games = await orchestrator.get_cached_games(data_id)
        messages = build_prompt(games, request.app.state.config.narrative.output_language)
        chunks = await narrator.open_stream(messages)
    except LibraryServiceError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error processing analysis request for {data_id}: {e}", exc_info=True)
        raise InternalError("An internal server error occurred during analysis.") from e

    logger.info(f"Streaming analysis for {data_id}...")
    return StreamingResponse(chunks, media_type="text/plain; charset=utf-8")


@router.get("/model", response_model=ModelInfo)
async def get_model(request: Request):
    """Configured text-generation model."""
    narrative = request.app.state.config.narrative
    return ModelInfo(model_name=narrative.model, version=narrative.model_version)


def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    store: Optional[GameCacheStore] = None,
    steam_client: Optional[SteamClient] = None,
    llm_provider: Optional[BaseLLMProvider] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration; read from the environment if omitted
        store: Cache store override
        steam_client: Steam client override
        llm_provider: Text-generation provider override

    Returns:
        Configured FastAPI app
    """
    config = config or ServiceConfig.from_env()
    setup_logger("services.game_library", level=config.log_level)

    app = FastAPI(title="Game Library Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    store = store or GameCacheStore(config.cache.database_url)
    steam_client = steam_client or SteamClient(config.steam)
    if llm_provider is None and config.narrative.api_key:
        llm_provider = OpenAIProvider(
            api_key=config.narrative.api_key,
            model=config.narrative.model,
            base_url=config.narrative.base_url,
            timeout=config.narrative.timeout,
        )

    app.state.config = config
    app.state.store = store
    app.state.steam_client = steam_client
    app.state.orchestrator = LibraryOrchestrator(
        store,
        steam_client,
        ttl=timedelta(seconds=config.cache.ttl_seconds),
    )
    app.state.narrator = (
        NarrativeGenerator(llm_provider, config.narrative) if llm_provider else None
    )

    @app.on_event("startup")
    async def startup():
        """Initialize database on startup."""
        await store.init_db()

    @app.on_event("shutdown")
    async def shutdown():
        """Release HTTP clients and pooled connections."""
        await steam_client.aclose()
        if llm_provider is not None:
            await llm_provider.aclose()
        await store.dispose()

    @app.get("/health")
    async def health():
        """Health check."""
        return {"status": "healthy"}

    app.add_exception_handler(LibraryServiceError, library_error_handler)
    app.include_router(router)
    return app


app = create_app()
