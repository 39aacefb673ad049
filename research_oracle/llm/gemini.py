"""Gemini (Google) reasoning provider implementation."""

from typing import Optional

from google import genai

from research_oracle.config import get_settings
from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.models import AnalystRole


class GeminiProvider(BaseReasoningProvider):
    """Gemini provider for analyst calls."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize Gemini provider.

        Args:
            api_key: Google API key. If None, uses config value.
            model: Model to use. If None, uses config value.
        """
        settings = get_settings()
        api_key = api_key or settings.google_api_key
        model = model or settings.default_llm_model_gemini

        if not api_key:
            raise ValueError("Google API key is not configured")

        super().__init__(api_key, model, settings.analyst_max_tokens)
        self.client = genai.Client(api_key=self.api_key)

    async def complete(self, role: AnalystRole, prompt: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )

        # Check if response was blocked by safety filters
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ValueError(f"Gemini blocked response: {feedback.block_reason}")

        if not response.candidates:
            raise ValueError("Gemini returned no candidates")

        candidate = response.candidates[0]
        if "SAFETY" in str(getattr(candidate, "finish_reason", "")):
            raise ValueError(f"Gemini candidate blocked: {candidate.finish_reason}")

        response_text = response.text
        if not response_text or not response_text.strip():
            raise ValueError("Gemini returned empty response")
        return response_text
