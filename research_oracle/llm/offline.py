"""Deterministic offline provider used when no reasoning service is configured."""

import json
from typing import Dict, Optional

from research_oracle.llm.base import BaseReasoningProvider
from research_oracle.llm.models import AnalystRole

MOCK_RESPONSES: Dict[AnalystRole, Dict] = {
    AnalystRole.BASE_RATE: {
        "estimate": 0.35,
        "reasoning": (
            "Historical base rate analysis: comparable events in this reference class "
            "resolved YES roughly 35% of the time when starting from similar conditions."
        ),
        "confidence": "MEDIUM",
    },
    AnalystRole.EVIDENCE: {
        "estimate": 0.45,
        "reasoning": (
            "Current evidence is mixed: recent developments point both ways and credible "
            "sources have not converged. In production this analyst would use live news."
        ),
        "confidence": "MEDIUM",
    },
    AnalystRole.CONTRARIAN: {
        "estimate": 0.55,
        "reasoning": (
            "The consensus may be underpricing a supply shock that most commentators "
            "ignore. Potential for rapid repricing if sentiment shifts."
        ),
        "confidence": "LOW",
    },
}


class OfflineProvider(BaseReasoningProvider):
    """Returns fixed canned JSON per analyst role.

    The canned text still goes through the regular parser, so the whole
    pipeline is exercised without network access.
    """

    name = "offline"

    def __init__(self, responses: Optional[Dict[AnalystRole, Dict]] = None):
        super().__init__(api_key=None, model="offline")
        self.responses = responses or MOCK_RESPONSES

    async def complete(self, role: AnalystRole, prompt: str) -> str:
        canned = dict(self.responses[role])
        canned["reasoning"] = f"[MOCK] {canned['reasoning']}"
        return json.dumps(canned)
