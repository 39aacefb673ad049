"""Estimation pipeline: question in, attested and persisted consensus out."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from research_oracle.analysis.calibration import (
    calculate_brier_score,
    calculate_calibration,
    update_calibration_stats,
)
from research_oracle.analysis.consensus import combine_estimates
from research_oracle.analysis.models import (
    CalibrationStats,
    CalibrationSummary,
    EstimateRequest,
    EstimateResponse,
    ResolveResponse,
)
from research_oracle.config import get_settings
from research_oracle.database.db import RecordStore, get_store
from research_oracle.database.models import RequestRecord
from research_oracle.exceptions import AlreadyResolved, NotFound, ValidationError
from research_oracle.ledger.attestation import AttestationProtocol, get_attestation_protocol
from research_oracle.ledger.models import Attestation
from research_oracle.llm.manager import AnalystOrchestrator
from research_oracle.utils.helpers import generate_request_id, utc_now

logger = logging.getLogger(__name__)

_UNSET = object()


class ResearchOracle:
    """Main orchestrator for estimates and resolutions."""

    def __init__(
        self,
        orchestrator: Optional[AnalystOrchestrator] = None,
        store: Optional[RecordStore] = None,
        attestation: Any = _UNSET,
        default_deadline_days: Optional[int] = None,
    ):
        """Initialize oracle.

        Args:
            orchestrator: Analyst orchestrator. If None, built from config.
            store: Record store. If None, uses the store singleton.
            attestation: Attestation protocol, or None to disable attestation.
                If omitted, uses the configured protocol.
            default_deadline_days: Deadline used for attestations when the
                request has none. If None, uses config value.
        """
        settings = get_settings()
        self.orchestrator = orchestrator or AnalystOrchestrator()
        self.store = store or get_store()
        self.attestation: Optional[AttestationProtocol] = (
            get_attestation_protocol() if attestation is _UNSET else attestation
        )
        self.default_deadline_days = (
            default_deadline_days
            if default_deadline_days is not None
            else settings.default_deadline_days
        )

    @staticmethod
    def validate_request(request: Union[EstimateRequest, Dict[str, Any]]) -> EstimateRequest:
        """Validate raw request fields.

        Raises:
            ValidationError: If any field is malformed
        """
        if isinstance(request, EstimateRequest):
            return request
        try:
            return EstimateRequest.model_validate(request)
        except PydanticValidationError as e:
            messages = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
                for error in e.errors()
            )
            raise ValidationError(messages) from e

    async def estimate(self, request: Union[EstimateRequest, Dict[str, Any]]) -> EstimateResponse:
        """Produce, attest and persist a consensus estimate.

        Args:
            request: Estimate request (model or raw fields)

        Returns:
            Estimate response with a calibration snapshot

        Raises:
            ValidationError: If the request is malformed
            AnalystError: If any analyst fails
        """
        request = self.validate_request(request)
        request_id = generate_request_id()
        created_at = utc_now()

        logger.info("Estimating %s: %s", request_id, request.question)

        results = await self.orchestrator.run(
            request.question,
            request.context,
            category=request.category.value if request.category else None,
            deadline=request.deadline.isoformat() if request.deadline else None,
        )
        consensus = combine_estimates(results.values())

        records = await asyncio.to_thread(self.store.get_all)
        calibration = calculate_calibration(records)

        attestation: Optional[Attestation] = None
        if request.attest_on_chain and self.attestation is not None:
            deadline = request.deadline or created_at + timedelta(days=self.default_deadline_days)
            attestation = await asyncio.to_thread(
                self.attestation.attest,
                request.question,
                consensus.combined.estimate,
                consensus.combined.confidence,
                deadline,
            )

        record = RequestRecord(
            request_id=request_id,
            question=request.question,
            context=request.context,
            category=request.category.value if request.category else None,
            deadline=request.deadline,
            estimate=consensus,
            attestation=attestation,
            created_at=created_at,
        )
        await asyncio.to_thread(self.store.append, record)

        logger.info(
            "Estimate %s: %.3f (%s, %s)",
            request_id,
            consensus.combined.estimate,
            consensus.combined.confidence.value,
            consensus.combined.agreement,
        )

        return EstimateResponse(
            request_id=request_id,
            question=request.question,
            estimate=consensus,
            attestation=attestation,
            calibration=CalibrationSummary(
                brier_score=calibration.brier_score,
                total_predictions=calibration.total_predictions,
                total_resolved=calibration.total_resolved,
            ),
            created_at=created_at,
        )

    def get_estimate(self, request_id: str) -> RequestRecord:
        """Get a stored estimate.

        Raises:
            NotFound: If the request id is unknown
        """
        record = self.store.get(request_id)
        if record is None:
            raise NotFound(f"Estimate not found: {request_id}")
        return record

    def _record_outcome(self, request_id: str, outcome: bool) -> RequestRecord:
        with self.store.transaction():
            record = self.get_estimate(request_id)
            if record.resolved_at is not None:
                raise AlreadyResolved(f"Estimate has already been resolved: {request_id}")

            brier_contribution = calculate_brier_score(record.estimate.combined.estimate, outcome)
            updated = self.store.update(
                request_id,
                {
                    "resolved_at": utc_now(),
                    "actual_outcome": outcome,
                    "brier_contribution": brier_contribution,
                },
            )
            update_calibration_stats(self.store)
        return updated

    async def resolve(self, request_id: str, outcome: bool) -> ResolveResponse:
        """Record the actual outcome of an estimate.

        Raises:
            NotFound: If the request id is unknown
            AlreadyResolved: If the estimate was resolved before
        """
        record = await asyncio.to_thread(self._record_outcome, request_id, outcome)
        logger.info(
            "Resolved %s: outcome=%s brier=%.4f",
            request_id,
            outcome,
            record.brier_contribution,
        )

        # Only the record that created the on-chain account may resolve it
        resolution_tx = None
        if (
            record.attestation is not None
            and not record.attestation.simulated
            and self.attestation is not None
        ):
            resolution_tx = await asyncio.to_thread(
                self.attestation.resolve, record.question, outcome
            )

        return ResolveResponse(
            request_id=request_id,
            outcome=outcome,
            brier_contribution=record.brier_contribution,
            resolution_tx=resolution_tx,
        )

    def calibration(self) -> CalibrationStats:
        """Calibration statistics over every stored record."""
        return calculate_calibration(self.store.get_all())
