"""OpenAI reasoning provider implementation.

Also serves any OpenAI-compatible endpoint (for example xAI's Grok) through
``openai_base_url``.
"""

from typing import Optional

from openai import AsyncOpenAI

from research_oracle.config import get_settings
from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.models import AnalystRole


class OpenAIProvider(BaseReasoningProvider):
    """OpenAI provider for analyst calls."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. If None, uses config value.
            model: Model to use. If None, uses config value.
            base_url: OpenAI-compatible endpoint. If None, uses config value.
        """
        settings = get_settings()
        api_key = api_key or settings.openai_api_key
        model = model or settings.default_llm_model_openai
        base_url = base_url or settings.openai_base_url

        if not api_key:
            raise ValueError("OpenAI API key is not configured")

        super().__init__(api_key, model, settings.analyst_max_tokens)
        self.client = AsyncOpenAI(api_key=self.api_key, base_url=base_url)

    async def complete(self, role: AnalystRole, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )

        content = response.choices[0].message.content
        if content is None:
            raise ValueError("OpenAI returned an empty message")
        return content
