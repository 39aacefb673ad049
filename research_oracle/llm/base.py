"""Base interface for reasoning-service providers."""

from abc import ABC, abstractmethod
from typing import Optional

from research_oracle.llm.models import AnalystRole


class BaseReasoningProvider(ABC):
    """Abstract base class for reasoning-service providers.

    A provider turns one analyst prompt into raw response text. Parsing and
    validation happen in the orchestrator, never in the provider.
    """

    name = "base"

    def __init__(self, api_key: Optional[str], model: str, max_tokens: int = 1024):
        """Initialize provider with API key and model name.

        Args:
            api_key: API key for the provider
            model: Model identifier to use
            max_tokens: Response length limit
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens

    @abstractmethod
    async def complete(self, role: AnalystRole, prompt: str) -> str:
        """Send one analyst prompt and return the raw response text.

        Args:
            role: Analyst role the prompt was built for
            prompt: Full prompt text

        Returns:
            Raw text produced by the reasoning service

        Raises:
            Exception: If the call fails
        """
        pass
