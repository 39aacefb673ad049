"""Tests for research_oracle/llm/manager.py - concurrent analyst fan-out."""

import asyncio
import json

import pytest

from research_oracle.exceptions import AnalystFailed, MalformedAnalystOutput
from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.manager import AnalystOrchestrator, create_provider
from research_oracle.llm.models import AnalystRole, Confidence
from research_oracle.llm.offline import OfflineProvider

QUESTION = "Will the bridge reopen before the end of the year?"


class ScriptedProvider(BaseReasoningProvider):
    """Provider whose per-role behaviour is scripted by the test."""

    def __init__(self, behaviours):
        super().__init__(api_key=None, model="scripted")
        self.behaviours = behaviours
        self.prompts = {}
        self.cancelled = set()

    async def complete(self, role, prompt):
        self.prompts[role] = prompt
        behaviour = self.behaviours[role]
        try:
            return await behaviour()
        except asyncio.CancelledError:
            self.cancelled.add(role)
            raise


def answer(estimate, confidence="MEDIUM", delay=0.0):
    async def behaviour():
        if delay:
            await asyncio.sleep(delay)
        return json.dumps({"estimate": estimate, "reasoning": "because", "confidence": confidence})

    return behaviour


def reply(text):
    async def behaviour():
        return text

    return behaviour


def hang():
    async def behaviour():
        await asyncio.sleep(60)

    return behaviour


def fail(exc):
    async def behaviour():
        raise exc

    return behaviour


class TestAnalystOrchestrator:
    @pytest.mark.asyncio
    async def test_offline_provider(self):
        orchestrator = AnalystOrchestrator(OfflineProvider(), timeout=5)

        results = await orchestrator.run(QUESTION)

        assert list(results) == [
            AnalystRole.BASE_RATE,
            AnalystRole.EVIDENCE,
            AnalystRole.CONTRARIAN,
        ]
        assert results[AnalystRole.BASE_RATE].estimate == 0.35
        assert results[AnalystRole.EVIDENCE].estimate == 0.45
        assert results[AnalystRole.CONTRARIAN].confidence is Confidence.LOW
        assert all(r.reasoning.startswith("[MOCK] ") for r in results.values())

    @pytest.mark.asyncio
    async def test_each_role_gets_its_own_prompt(self):
        provider = ScriptedProvider({role: answer(0.5) for role in AnalystRole})
        orchestrator = AnalystOrchestrator(provider, timeout=5)

        await orchestrator.run(QUESTION, "Repairs are on schedule.", category="events")

        assert len(provider.prompts) == 3
        assert len(set(provider.prompts.values())) == 3
        for prompt in provider.prompts.values():
            assert QUESTION in prompt
            assert "Repairs are on schedule." in prompt
            assert "CATEGORY: events" in prompt

    @pytest.mark.asyncio
    async def test_malformed_output_fails_whole_run(self):
        provider = ScriptedProvider(
            {
                AnalystRole.BASE_RATE: answer(0.3),
                AnalystRole.EVIDENCE: answer(0.4),
                AnalystRole.CONTRARIAN: reply("I would rather not say."),
            }
        )
        orchestrator = AnalystOrchestrator(provider, timeout=5)

        with pytest.raises(AnalystFailed) as exc_info:
            await orchestrator.run(QUESTION)

        assert exc_info.value.role is AnalystRole.CONTRARIAN
        assert isinstance(exc_info.value.cause, MalformedAnalystOutput)
        assert "contrarian analyst failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self):
        provider = ScriptedProvider(
            {
                AnalystRole.BASE_RATE: fail(RuntimeError("service unavailable")),
                AnalystRole.EVIDENCE: answer(0.4),
                AnalystRole.CONTRARIAN: answer(0.5),
            }
        )
        orchestrator = AnalystOrchestrator(provider, timeout=5)

        with pytest.raises(AnalystFailed) as exc_info:
            await orchestrator.run(QUESTION)

        assert exc_info.value.role is AnalystRole.BASE_RATE
        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = ScriptedProvider(
            {
                AnalystRole.BASE_RATE: answer(0.3),
                AnalystRole.EVIDENCE: hang(),
                AnalystRole.CONTRARIAN: answer(0.5),
            }
        )
        orchestrator = AnalystOrchestrator(provider, timeout=0.05)

        with pytest.raises(AnalystFailed) as exc_info:
            await orchestrator.run(QUESTION)

        assert exc_info.value.role is AnalystRole.EVIDENCE
        assert isinstance(exc_info.value.cause, TimeoutError)

    @pytest.mark.asyncio
    async def test_first_failure_cancels_stragglers(self):
        provider = ScriptedProvider(
            {
                AnalystRole.BASE_RATE: hang(),
                AnalystRole.EVIDENCE: fail(ValueError("bad")),
                AnalystRole.CONTRARIAN: hang(),
            }
        )
        orchestrator = AnalystOrchestrator(provider, timeout=30)

        with pytest.raises(AnalystFailed) as exc_info:
            await asyncio.wait_for(orchestrator.run(QUESTION), timeout=5)

        assert exc_info.value.role is AnalystRole.EVIDENCE
        assert provider.cancelled == {AnalystRole.BASE_RATE, AnalystRole.CONTRARIAN}


class TestCreateProvider:
    def test_offline(self):
        assert isinstance(create_provider("offline"), OfflineProvider)

    def test_auto_without_keys_is_offline(self, settings):
        settings.reasoning_provider = "auto"
        settings.anthropic_api_key = None

        assert isinstance(create_provider(), OfflineProvider)

    @pytest.mark.parametrize("name", ["claude", "openai", "gemini"])
    def test_missing_api_key(self, settings, name):
        settings.anthropic_api_key = None
        settings.openai_api_key = None
        settings.google_api_key = None

        with pytest.raises(ValueError):
            create_provider(name)

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_provider("oracle-of-delphi")
