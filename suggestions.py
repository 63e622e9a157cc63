"""
Message suggestions from a text-generation API.

Suggestions are advisory: `suggest_messages` falls back to a fixed list
whenever the generator is missing or fails. Nothing in message delivery
depends on this module.
"""

import logging
import os
import random
from typing import List, Optional

from openai import OpenAI

from errors import UnavailableError

logger = logging.getLogger(__name__)

SUGGESTIONS_API_KEY = os.getenv("SUGGESTIONS_API_KEY")
SUGGESTIONS_BASE_URL = os.getenv("SUGGESTIONS_BASE_URL")
SUGGESTIONS_MODEL = os.getenv("SUGGESTIONS_MODEL", "gpt-4o-mini")

SEPARATOR = "||"
FALLBACK_SUGGESTIONS = (
    "What's your favorite movie?||Do you have any pets?||What's your dream job?||"
    "What's something you've always wanted to try?||What makes you genuinely happy?||"
    "If you could travel anywhere, where would you go?"
)

THEMES = [
    "motivational and encouraging",
    "thoughtful and caring",
    "friendly and supportive",
    "uplifting and positive",
    "kind and compassionate",
    "cheerful and optimistic",
]
CONTEXTS = [
    "for someone having a tough day",
    "to brighten someone's mood",
    "to show someone they're appreciated",
    "to make someone smile",
    "to remind someone they matter",
]
LENGTH_HINTS = {"short": "one sentence", "medium": "two or three sentences", "long": "a short paragraph"}


def get_client() -> Optional[OpenAI]:
    if not SUGGESTIONS_API_KEY:
        return None
    return OpenAI(api_key=SUGGESTIONS_API_KEY, base_url=SUGGESTIONS_BASE_URL)


def parse_suggestions(text: str, limit: int = 3) -> List[str]:
    items = [s.strip() for s in text.split(SEPARATOR)]
    return [s for s in items if s][:limit]


def _complete(client: OpenAI, prompt: str, temperature: float, max_tokens: int) -> str:
    response = client.chat.completions.create(
        model=SUGGESTIONS_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return (response.choices[0].message.content or "").strip()


def suggest_messages() -> dict:
    fallback = {"suggestions": parse_suggestions(FALLBACK_SUGGESTIONS), "source": "fallback"}
    client = get_client()
    if client is None:
        return fallback

    prompt = (
        f"Generate 3 unique {random.choice(THEMES)} anonymous messages {random.choice(CONTEXTS)}. "
        f"Keep each under 50 characters and separate them with {SEPARATOR}. "
        "Write only the messages."
    )
    try:
        suggestions = parse_suggestions(_complete(client, prompt, temperature=1.0, max_tokens=150))
    except Exception as exc:
        logger.warning("Suggestion generation failed, using fallback: %s", exc)
        return fallback
    if not suggestions:
        return fallback
    return {"suggestions": suggestions, "source": SUGGESTIONS_MODEL}


def generate_message(tone: str = "friendly", length: str = "medium", message_type: str = "general", topic: str = "") -> str:
    client = get_client()
    if client is None:
        raise UnavailableError("Message generation is not configured")

    prompt = f"Write a {message_type} anonymous message of {LENGTH_HINTS.get(length, length)} in a {tone} tone."
    if topic:
        prompt += f" The topic should be related to: {topic}."
    prompt += " Keep it positive, respectful, and appropriate for anonymous messaging. Write only the message content."
    try:
        text = _complete(client, prompt, temperature=0.8, max_tokens=200)
    except Exception as exc:
        logger.warning("Message generation failed: %s", exc)
        raise UnavailableError("Unable to generate message. Please try again.") from exc
    if not text:
        raise UnavailableError("Unable to generate message. Please try again.")
    return text
