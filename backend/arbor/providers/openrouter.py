"""OpenRouter provider.

OpenRouter exposes many vendors' models behind one OpenAI-compatible API
and a single key.
"""

from openai import AsyncOpenAI

from arbor.providers.openai_compat import OpenAICompatibleProvider

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(OpenAICompatibleProvider):
    suggested_models = [
        "openai/gpt-4o",
        "openai/gpt-4o-mini",
        "anthropic/claude-3.5-sonnet",
        "mistralai/mistral-large",
        "qwen/qwen-2.5-72b-instruct",
    ]

    def __init__(self, *, client: AsyncOpenAI | None = None, api_key: str | None = None) -> None:
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=OPENROUTER_BASE_URL,
                default_headers={"X-Title": "Arbor"},
            )
        super().__init__(client)

    @property
    def name(self) -> str:
        return "openrouter"
