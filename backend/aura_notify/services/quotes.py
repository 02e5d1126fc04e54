"""
Notification content: AI-personalized lines for premium users, round-robin static quotes otherwise.

The static quote is picked once per run by the dispatcher (MotivationDirectory.pick_static_quote)
and shared by every static-path recipient, including premium users whose AI call failed.
"""
import logging
import random
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from aura_notify.core.constants import ATTRIBUTION_DELIMITER, FALLBACK_MESSAGE
from aura_notify.services.directory import QuoteSnapshot, UserSnapshot

logger = logging.getLogger(__name__)

QUOTE_THEMES = (
    "calm and inner peace",
    "mindfulness and being present",
    "self-compassion and kindness to yourself",
    "gratitude and noticing the good",
    "small steps and progress",
    "rest and gentle pace",
    "courage to show up as you are",
    "letting go of perfectionism",
    "resilience without forcing",
    "quiet strength",
    "breathing and grounding",
    "accepting today as it is",
    "hope without toxic positivity",
    "starting fresh without judgment",
)

QUOTE_ANGLES = (
    "for someone starting their day",
    "for someone who needs a gentle nudge",
    "for a moment of pause",
    "for someone feeling overwhelmed",
    "for someone learning to go slow",
    "for someone building a small habit",
    "for someone who needs to hear they're enough",
    "for a mindful check-in",
)

SYSTEM_PROMPT = f"""You are a thoughtful writer of short, uplifting lines. Rules:
- Reply with ONE line only. No quotation marks, no preamble.
- Maximum 15 words for the quote. Plain text.
- If the line is from a known person (author, philosopher, etc.), add a space, then an em dash, then the author name at the end. Example: "Peace begins with a smile.{ATTRIBUTION_DELIMITER}Mother Teresa"
- If it's your own original line or the author is unknown, give only the line with no attribution.
- Sound fresh and genuine; avoid overused clichés.
- Favor calm, mindful, gentle motivation. No hustle culture. Preserve calm and self-compassion."""


@dataclass(frozen=True)
class QuoteContent:
    text: str
    author: str | None = None


@dataclass(frozen=True)
class ResolvedContent:
    """Body to send; quote_id is set only when the run's shared static quote was used."""
    body: str
    quote_id: int | None = None


class QuoteGenerator(Protocol):
    async def generate(self, rng: random.Random) -> QuoteContent | None:
        ...


def pick_theme_and_angle(rng: random.Random) -> tuple[str, str]:
    return rng.choice(QUOTE_THEMES), rng.choice(QUOTE_ANGLES)


def build_user_prompt(theme: str, angle: str) -> str:
    return (
        f"Write one short, calming motivational line about {theme}, {angle}. "
        f'Unique phrasing. Include author at the end with "{ATTRIBUTION_DELIMITER}Name" only if it\'s a known quote.'
    )


def parse_ai_line(raw: str | None) -> QuoteContent | None:
    """Split 'text — Author' on the last delimiter. Returns None for empty output."""
    line = (raw or "").strip()
    if not line:
        return None
    idx = line.rfind(ATTRIBUTION_DELIMITER)
    if idx != -1:
        text = line[:idx].strip()
        author = line[idx + len(ATTRIBUTION_DELIMITER):].strip()
        if text and author:
            return QuoteContent(text=text, author=author)
    return QuoteContent(text=line)


def format_quote_body(text: str, author: str | None = None) -> str:
    if author:
        return f"{text}{ATTRIBUTION_DELIMITER}{author}"
    return text


class OpenAIQuoteGenerator:
    """
    One short line per call from an OpenAI chat model via pydantic_ai.
    Returns None (never raises) when no API key is configured, the call fails or times out,
    or the model returns nothing usable.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        timeout_seconds: float = 15.0,
        model: Any = None,
    ):
        self._api_key = (api_key or "").strip()
        self._model_name = model_name
        self._timeout_seconds = timeout_seconds
        self._model = model  # tests pass a pydantic_ai TestModel / FunctionModel
        self._agent: Agent | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._api_key) or self._model is not None

    def _get_agent(self) -> Agent:
        if self._agent is None:
            model = self._model or OpenAIChatModel(
                self._model_name, provider=OpenAIProvider(api_key=self._api_key)
            )
            self._agent = Agent(
                model=model,
                instructions=SYSTEM_PROMPT,
                model_settings=ModelSettings(
                    temperature=0.95,
                    max_tokens=80,
                    timeout=self._timeout_seconds,
                ),
            )
        return self._agent

    async def generate(self, rng: random.Random) -> QuoteContent | None:
        if not self.enabled:
            return None
        theme, angle = pick_theme_and_angle(rng)
        try:
            result = await self._get_agent().run(build_user_prompt(theme, angle))
        except Exception as e:
            logger.warning("AI quote generation failed (theme=%s): %s", theme, e)
            return None
        return parse_ai_line(result.output)


async def resolve_content(
    user: UserSnapshot,
    static_quote: QuoteSnapshot | None,
    generator: QuoteGenerator | None,
    rng: random.Random,
) -> ResolvedContent:
    """
    Premium users get an AI line when the generator produces one; everyone else (and premium
    users whose AI call came back empty) gets the run's shared static quote. With an empty
    quote pool the built-in fallback line is used, so the body is never empty.
    """
    if user.is_premium and generator is not None:
        try:
            ai_quote = await generator.generate(rng)
        except Exception as e:
            logger.warning("AI quote for premium user %s failed: %s", user.id, e)
            ai_quote = None
        if ai_quote is not None and ai_quote.text:
            return ResolvedContent(body=format_quote_body(ai_quote.text, ai_quote.author))
        logger.debug("No AI quote for premium user %s; using static quote", user.id)
    if static_quote is not None:
        return ResolvedContent(
            body=format_quote_body(static_quote.text, static_quote.author),
            quote_id=static_quote.id,
        )
    return ResolvedContent(body=FALLBACK_MESSAGE)
