"""Analyst orchestration: concurrent fan-out over the required analyst roles."""

import asyncio
import logging
from typing import Dict, Optional, Sequence

from research_oracle.config import get_settings
from research_oracle.exceptions import AnalystFailed
from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.models import (
    REQUIRED_ROLES,
    AnalystResult,
    AnalystRole,
    QuestionContext,
)
from research_oracle.llm.offline import OfflineProvider
from research_oracle.llm.parsing import parse_analyst_response
from research_oracle.llm.prompts import build_analyst_prompt

logger = logging.getLogger(__name__)


def create_provider(name: Optional[str] = None) -> BaseReasoningProvider:
    """Build the configured reasoning provider.

    Args:
        name: Provider name ("claude", "openai", "gemini", "offline").
            If None, uses config value (``auto`` resolves to claude when an
            Anthropic key is present, offline otherwise).

    Returns:
        Provider instance

    Raises:
        ValueError: If the provider name is unknown or its key is missing
    """
    name = (name or get_settings().resolved_provider).lower()

    if name == "offline":
        logger.info("Running analysts in OFFLINE mode - canned responses")
        return OfflineProvider()
    if name == "claude":
        from research_oracle.llm.claude import ClaudeProvider

        return ClaudeProvider()
    if name == "openai":
        from research_oracle.llm.openai import OpenAIProvider

        return OpenAIProvider()
    if name == "gemini":
        from research_oracle.llm.gemini import GeminiProvider

        return GeminiProvider()

    raise ValueError(f"Unknown reasoning provider: {name}")


class AnalystOrchestrator:
    """Runs every required analyst role concurrently against one provider."""

    def __init__(
        self,
        provider: Optional[BaseReasoningProvider] = None,
        roles: Sequence[AnalystRole] = REQUIRED_ROLES,
        timeout: Optional[float] = None,
    ):
        """Initialize orchestrator.

        Args:
            provider: Reasoning provider. If None, built from config.
            roles: Analyst roles to invoke, one call each
            timeout: Per-call timeout in seconds. If None, uses config value.
        """
        self.provider = provider or create_provider()
        self.roles = tuple(roles)
        self.timeout = timeout if timeout is not None else get_settings().analyst_timeout_seconds

    async def run(
        self, question: str, context: Optional[str] = None, **extra
    ) -> Dict[AnalystRole, AnalystResult]:
        """Invoke every role concurrently and parse the results.

        The first failure cancels the remaining calls; there is no partial
        consensus.

        Args:
            question: Question text
            context: Optional free-text context
            **extra: Additional QuestionContext fields (category, deadline)

        Returns:
            Mapping of role to parsed result, in role order

        Raises:
            AnalystFailed: If any role's call or parse fails
        """
        question_context = QuestionContext(question=question, context=context, **extra)

        tasks = {
            asyncio.create_task(self._run_analyst(role, question_context)): role
            for role in self.roles
        }

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        failed = [task for task in done if task.exception() is not None]
        if failed:
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            first = min(failed, key=lambda task: self.roles.index(tasks[task]))
            raise first.exception()

        results = {tasks[task]: task.result() for task in done}
        return {role: results[role] for role in self.roles}

    async def _run_analyst(self, role: AnalystRole, context: QuestionContext) -> AnalystResult:
        """Run one analyst call and parse its output."""
        prompt = build_analyst_prompt(role, context)

        try:
            raw = await asyncio.wait_for(self.provider.complete(role, prompt), timeout=self.timeout)
            parsed = parse_analyst_response(raw)
        except asyncio.TimeoutError as e:
            logger.error("%s analyst timed out after %ss", role.value, self.timeout)
            raise AnalystFailed(role, TimeoutError(f"no response within {self.timeout}s")) from e
        except Exception as e:
            logger.error("Error running %s analyst: %s", role.value, e)
            raise AnalystFailed(role, e) from e

        logger.debug(
            "%s analyst: estimate=%.3f confidence=%s",
            role.value,
            parsed.estimate,
            parsed.confidence.value,
        )
        return AnalystResult(role=role, **parsed.model_dump())
