"""Play-habit commentary: prompt construction and streamed generation."""

import logging
import re
from typing import AsyncIterator, Optional, Sequence

import openai

from shared.llm_provider.base import BaseLLMProvider

from .config import DEFAULT_OUTPUT_LANGUAGE, NarrativeConfig
from .errors import LibraryServiceError, UpstreamError, UpstreamNetworkError
from .models import FormattedGame, PromptMessages

logger = logging.getLogger(__name__)

MAX_GAMES_IN_PROMPT = 100
MIN_PLAYTIME_HOURS = 0.1

NO_GAMES_MESSAGE = "The user has no games or the data is unavailable."
NO_PLAYTIME_MESSAGE = "The user owns games, but none have significant playtime recorded."

SYSTEM_PROMPT_TEMPLATE = """
**You are a seasoned, perceptive game-data analyst and a witty fellow gamer who loves to share.** Your task is to analyse a Steam user's game library and write a "player portrait sketch" that is insightful, funny, and constructive. Base it on the data: uncover the player's taste and habits, include some genuine praise, and give personalised recommendations.

**Input:**
A list of games, one per line, formatted as "- Game name: playtime (hours)".

**Output:** flowing, well-paragraphed prose covering:

1. **Overall portrait:**
   * Describe what kind of player this is (dedicated specialist, wide-ranging explorer, completionist, casual unwinder, story seeker, ...).
   * Identify their core taste: which genres (RPG, FPS, strategy, simulation, indie, narrative, ...) dominate, and whether the taste is focused or eclectic.
   * Point out the highlights of the library: loyalty to a genre or series, courage in picking obscure gems, or the sheer persistence shown by huge playtimes.

2. **Signature games:**
   * Pick 1-3 games with the most playtime or that are most representative (or a "surprise" pick that departs from the main taste).
   * Explain why the player is likely hooked: challenge, story, social play, creativity, relaxation, ...
   * Distil the player's core preferences from these picks.
   * Do not discuss games with very little playtime.

3. **Play habits:**
   * Comment on how playtime is distributed: a grinder pouring hours into a few titles, a taster sampling widely, or both?
   * Say what that might reveal (free time, drive for completion, curiosity), in a neutral or gently teasing tone.

4. **Personal recommendations:**
   * Sincerely recommend 1-2 games or genres the player has not tried or has barely touched.
   * Explain each recommendation clearly, tied to what they already play.

**Style:**
* Data driven: every claim and recommendation must rest on the list and the hours.
* Insightful: offer real observations, not a restatement of the data.
* Humorous: light and playful; a little sarcasm is welcome.
* Constructive: balance analysis with praise and useful suggestions.
* No empty flattery: praise needs reasons, recommendations need specifics.
* Natural prose: connected paragraphs rather than a bullet list.
* Write the whole response in {language}.

Begin the player portrait once the game data is provided:
"""

USER_PROMPT_TEMPLATE = """
Here is the user's game data:
{games}

Begin your review:
"""

_LEADING_NUMBER = re.compile(r"\s*([+-]?\d+(?:\.\d+)?)")


def parse_hours(playtime_hours: str) -> float:
    """Leading number of a "12.3 hours" string; 0.0 if there is none."""
    match = _LEADING_NUMBER.match(playtime_hours or "")
    return float(match.group(1)) if match else 0.0


def format_games_for_prompt(games: Optional[Sequence[FormattedGame]]) -> str:
    """Render the most-played games as "- name: hours" lines."""
    if not games:
        return NO_GAMES_MESSAGE

    relevant = [game for game in games if parse_hours(game.playtime_hours) > MIN_PLAYTIME_HOURS]
    relevant.sort(key=lambda game: parse_hours(game.playtime_hours), reverse=True)
    relevant = relevant[:MAX_GAMES_IN_PROMPT]

    if not relevant:
        return NO_PLAYTIME_MESSAGE

    return "\n".join(f"- {game.name}: {game.playtime_hours}" for game in relevant)


def build_prompt(
    games: Optional[Sequence[FormattedGame]],
    language: str = DEFAULT_OUTPUT_LANGUAGE,
) -> PromptMessages:
    """Wrap the rendered game list into the system/user exchange."""
    return PromptMessages(
        system=SYSTEM_PROMPT_TEMPLATE.format(language=language),
        user=USER_PROMPT_TEMPLATE.format(games=format_games_for_prompt(games)),
    )


class NarrativeGenerator:
    """Streams commentary about a game library from a chat-completion model."""

    def __init__(self, provider: BaseLLMProvider, config: NarrativeConfig):
        self.provider = provider
        self.config = config

    async def stream_analysis(self, messages: PromptMessages) -> AsyncIterator[str]:
        """Yield non-empty text deltas in the order they arrive."""
        logger.info(f"Sending request to model {self.config.model}")
        chunks = self.provider.stream(
            prompt=messages.user,
            system_prompt=messages.system,
            temperature=self.config.temperature,
        )
        try:
            async for chunk in chunks:
                if chunk.text:
                    yield chunk.text
        except openai.APIStatusError as e:
            logger.error(f"AI service error: status {e.status_code}: {e.message}")
            raise UpstreamError(
                f"Failed to get analysis from AI service: {e.message or 'API error'}",
                upstream_status=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            logger.error(f"Network error calling AI service: {type(e).__name__}")
            raise UpstreamNetworkError("Network error connecting to AI service.") from e
        finally:
            # Closes the upstream HTTP stream when the caller stops early.
            await chunks.aclose()

    async def open_stream(self, messages: PromptMessages) -> AsyncIterator[str]:
        """
        Start the completion and wait for its first chunk.

        Failures while connecting surface here as typed errors, before any
        response bytes are committed. The returned iterator relays the first
        chunk and then the rest of the stream.
        """
        chunks = self.stream_analysis(messages)
        try:
            first = await chunks.__anext__()
        except StopAsyncIteration:
            first = None
        logger.info("Streaming response from AI service...")
        return self._relay(first, chunks)

    async def _relay(self, first: Optional[str], chunks: AsyncIterator[str]) -> AsyncIterator[str]:
        try:
            if first is not None:
                yield first
            async for text in chunks:
                yield text
        except LibraryServiceError as e:
            logger.error(f"Analysis stream failed after it started: {e.message}")
            raise
        finally:
            await chunks.aclose()
        logger.info("Finished streaming response")
