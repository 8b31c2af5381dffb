"""
AI gateway — a thin request/response wrapper around a hosted language model.

Used by the back office for drafting court documents, answering agent
questions, translating client messages and writing marketing copy.  The
check-in flow never touches it.

Design:
  - One call in, one string out, or a typed GatewayError.
  - No retries: the caller shows the error and the user re-submits.
  - No API key → ServiceUnavailable on every call (the rest of the app still works).
  - Multi-platform social posts fan out concurrently and wait for all.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .config import DEFAULT_AI_MODEL
from .exceptions import EmptyResponse, InvalidCredential, ServiceUnavailable

logger = logging.getLogger(__name__)


# ─── Prompts ─────────────────────────────────────────────────────────

LEGAL_DOC_PROMPT = """\
You are a professional legal document drafter for a North Carolina bail bond agency.
Draft a formal {doc_type}.

Details:
- Client Name: {client_name}
- County: {county}
- Additional Context: {extra_details}

Keep the tone professional and precise for NC jurisdiction. Use a clear
structure suitable for a plain text editor. Do not use markdown formatting.
"""

ASSISTANT_PROMPT = (
    "You are a strategic assistant for a bail bond agency. Give a detailed, "
    "well-researched answer to this question: {query}. Focus on North Carolina "
    "statutes, local court procedure, or competitive market analysis where relevant."
)

AUTHORITY_PROMPT = """\
List the official address and phone number for these authorities in {county} County, North Carolina:
1. Clerk of Superior Court
2. Sheriff's Office / County Jail
3. District Attorney

Give the physical address for each.
"""

TRANSLATE_PROMPT = (
    "Translate the following text to {target}. Output ONLY the translated text, "
    'with no preamble or explanation. Text: "{text}"'
)

SOCIAL_POST_PROMPT = """\
Draft a social media post for a bail bond agency on {platform}.
Topic: {topic}
Constraints: {constraints}

Output ONLY the post content.
"""

PLATFORM_CONSTRAINTS: dict[str, str] = {
    "X": "Under 280 characters, use 2-3 relevant hashtags, concise and punchy.",
    "TikTok": "A short video caption, engaging and on-trend, with emojis and popular hashtags.",
    "Facebook": "Professional yet friendly tone for a local community business page, include a call to action.",
}

LANGUAGE_NAMES: dict[str, str] = {"en": "English", "es": "Spanish"}


class AIGateway:
    """Async wrapper around an OpenAI-compatible chat completions client.

    Usage:
        gateway = AIGateway(api_key=os.environ.get("OPENAI_API_KEY"))
        text = await gateway.translate("Your court date is Monday", "es")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_AI_MODEL,
        client: Any | None = None,
    ):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=api_key)

    @property
    def available(self) -> bool:
        return self._client is not None

    async def generate(self, task: str, context: str, temperature: float | None = None) -> str:
        """Send one prompt, return the model's text.

        Raises:
            ServiceUnavailable: no client configured, or the service failed.
            InvalidCredential: the API key was rejected.
            EmptyResponse: the model returned no text.
        """
        prompt = f"Task: {task}\nContext: {context}" if context else task
        return await self._complete(prompt, temperature)

    # ─── Task Helpers ────────────────────────────────────────────────

    async def draft_legal_document(
        self, doc_type: str, client_name: str, county: str, extra_details: str = ""
    ) -> str:
        prompt = LEGAL_DOC_PROMPT.format(
            doc_type=doc_type,
            client_name=client_name,
            county=county,
            extra_details=extra_details or "None",
        )
        return await self._complete(prompt)

    async def ask_assistant(self, query: str) -> str:
        return await self._complete(ASSISTANT_PROMPT.format(query=query))

    async def search_authority(self, county: str) -> str:
        return await self._complete(AUTHORITY_PROMPT.format(county=county))

    async def translate(self, text: str, target_lang: str) -> str:
        target = LANGUAGE_NAMES.get(target_lang, target_lang)
        return await self._complete(TRANSLATE_PROMPT.format(target=target, text=text))

    async def generate_social_post(self, platform: str, topic: str) -> str:
        prompt = SOCIAL_POST_PROMPT.format(
            platform=platform,
            topic=topic,
            constraints=PLATFORM_CONSTRAINTS.get(platform, "Concise and professional."),
        )
        return await self._complete(prompt)

    async def generate_social_posts(self, platforms: list[str], topic: str) -> dict[str, str]:
        """Draft one post per platform in parallel; fail if any draft fails."""
        drafts = await asyncio.gather(
            *(self.generate_social_post(platform, topic) for platform in platforms)
        )
        return dict(zip(platforms, drafts))

    async def generate_marketing_content(self, task: str, context: str) -> str:
        return await self.generate(task, context, temperature=0.8)

    # ─── Transport ───────────────────────────────────────────────────

    async def _complete(self, prompt: str, temperature: float | None = None) -> str:
        if self._client is None:
            logger.info("No OPENAI_API_KEY configured; AI gateway unavailable")
            raise ServiceUnavailable("AI service unavailable (check API key configuration)")

        import openai

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            logger.error("AI gateway rejected credentials: %s", e)
            raise InvalidCredential("The AI service rejected the configured API key") from e
        except openai.APIConnectionError as e:
            logger.error("AI gateway unreachable: %s", e)
            raise ServiceUnavailable("Could not reach the AI service") from e
        except openai.APIError as e:
            logger.error("AI gateway error: %s", e)
            raise ServiceUnavailable(f"AI service error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("AI gateway returned empty content")
            raise EmptyResponse()
        return content.strip()
