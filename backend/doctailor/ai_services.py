"""
Generative rewriter clients.
Turns a tailoring prompt into rewritten document text via an
OpenAI-compatible chat completions API or the openai-agents runner.
"""
import logging
from typing import Optional

import httpx

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert resume writer and career advisor. "
    "Return only the rewritten document text."
)


class RewriterError(Exception):
    pass


class AIService:
    """Rewriter backed by an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini",
                 base_url: str = "https://api.openai.com/v1", timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def rewrite(self, prompt: str) -> str:
        text = await self._call_ai_api_http(prompt)
        if not text or not text.strip():
            raise RewriterError("The generative model returned no content")
        return text

    def _is_local(self) -> bool:
        return self.base_url.startswith("http://localhost") or \
            self.base_url.startswith("https://localhost") or \
            "host.docker.internal" in self.base_url

    async def _call_ai_api_http(self, prompt: str) -> str:
        if not self.api_key and not self._is_local():
            raise RewriterError("No API key configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.7,
            "max_tokens": 4000,
        }

        logger.info(f"Calling {self.model} at {self.base_url}")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
            )

        if response.status_code != 200:
            raise RewriterError(f"API call failed: {response.status_code} {response.text}")

        result = response.json()
        try:
            message = result["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise RewriterError(f"Unexpected API response shape: {e}") from e
        # deepseek-reasoner may leave content empty and answer in reasoning_content
        return message.get("content") or message.get("reasoning_content") or ""


class AgentAIService(AIService):
    """Rewriter that runs a single openai-agents ``Agent``.

    Authentication comes from ``OPENAI_API_KEY`` as read by openai-agents.
    """

    async def rewrite(self, prompt: str) -> str:
        from agents import Agent, Runner

        agent = Agent(
            name="DocumentTailor",
            instructions=SYSTEM_PROMPT,
            model=self.model,
        )
        result = await Runner.run(agent, prompt)
        output = result.final_output
        if not output or not str(output).strip():
            raise RewriterError("The generative model returned no content")
        return str(output)


def get_ai_service(settings: Optional[Settings] = None) -> AIService:
    """Build the configured rewriter."""
    settings = settings or get_settings()
    model = settings.ai_model
    if "deepseek" in model:
        api_key, base_url = settings.deepseek_api_key, settings.deepseek_base_url
    else:
        api_key, base_url = settings.openai_api_key, settings.openai_base_url

    if settings.ai_provider == "agents":
        return AgentAIService(api_key=api_key, model=model, base_url=base_url, timeout=settings.ai_timeout)
    if settings.ai_provider != "http":
        raise ValueError(f"Unknown AI_PROVIDER: {settings.ai_provider!r} (expected http or agents)")
    return AIService(api_key=api_key, model=model, base_url=base_url, timeout=settings.ai_timeout)
