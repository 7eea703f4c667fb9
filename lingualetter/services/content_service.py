"""LLM-backed daily article generation."""

import json
import logging
from typing import Any

from langchain_openai import ChatOpenAI

from lingualetter.core.config import settings
from lingualetter.core.exceptions import UpstreamProviderError

logger = logging.getLogger(__name__)

ARTICLE_FIELDS = (
    "trend_topic",
    "korean_article",
    "english_translation",
    "expression",
    "literal_translation",
    "idiomatic_translation",
    "reason",
)

ARTICLE_PROMPT = (
    "You are a newsletter writer who explains Korean news to learners of Korean.\n"
    "Pick one topic trending in Korea today and write a short (about 300 characters) "
    "neutral Korean news article about a concrete event.\n"
    "Include at least one Korean expression that cannot be translated literally.\n\n"
    "Return ONLY a JSON object with keys:\n"
    "- trend_topic: the topic in a few words\n"
    "- korean_article: the Korean article\n"
    "- english_translation: a natural, idiomatic English translation\n"
    "- expression: the Korean expression\n"
    "- literal_translation: the (wrong) literal English rendering\n"
    "- idiomatic_translation: the natural English rendering\n"
    "- reason: why the idiomatic rendering is right\n"
)


def _parse_article(content: str) -> dict[str, str]:
    # Handle markdown code blocks
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    result: dict[str, Any] = json.loads(content)
    missing = [f for f in ARTICLE_FIELDS if not result.get(f)]
    if missing:
        raise ValueError(f"Article is missing fields: {', '.join(missing)}")
    return {f: str(result[f]).strip() for f in ARTICLE_FIELDS}


class ContentGenerator:
    """Generates one newsletter article per call."""

    def __init__(self, llm: ChatOpenAI | None = None) -> None:
        self.llm = llm or ChatOpenAI(
            model=settings.openai_model,
            temperature=0.7,
            api_key=settings.openai_api_key,
            timeout=settings.llm_timeout_seconds,
        )

    async def generate(self) -> dict[str, str]:
        """Return the article fields.

        Raises:
            UpstreamProviderError: If the LLM call fails or returns unusable output.
        """
        try:
            response = await self.llm.ainvoke(ARTICLE_PROMPT)
            content = response.content
            if not isinstance(content, str):
                raise ValueError("LLM returned non-text content")
            return _parse_article(content)
        except Exception as e:
            logger.exception("Article generation failed")
            raise UpstreamProviderError("openai", f"Article generation failed: {e}") from e
