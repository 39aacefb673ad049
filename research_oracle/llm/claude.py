"""Claude (Anthropic) reasoning provider implementation."""

from typing import Optional

from anthropic import AsyncAnthropic

from research_oracle.config import get_settings
from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.models import AnalystRole


class ClaudeProvider(BaseReasoningProvider):
    """Claude provider for analyst calls."""

    name = "claude"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize Claude provider.

        Args:
            api_key: Anthropic API key. If None, uses config value.
            model: Model to use. If None, uses config value.
        """
        settings = get_settings()
        api_key = api_key or settings.anthropic_api_key
        model = model or settings.default_llm_model_claude

        if not api_key:
            raise ValueError("Anthropic API key is not configured")

        super().__init__(api_key, model, settings.analyst_max_tokens)
        self.client = AsyncAnthropic(api_key=self.api_key)

    async def complete(self, role: AnalystRole, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

        block = response.content[0]
        if block.type != "text":
            raise ValueError(f"Unexpected response type: {block.type}")
        return block.text
