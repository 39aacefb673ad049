"""File-backed record store for the research oracle.

Layout under the records directory:

    requests.jsonl      one RequestRecord per line, append-only
    oracle-state.json   aggregate OracleState document

The log is the source of truth. Every read-modify-write runs under one
re-entrant lock, and ``transaction()`` lets callers group several operations
(resolve + calibration recompute) into a single critical section.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from research_oracle.config import get_settings
from research_oracle.database.models import OracleState, RequestRecord
from research_oracle.exceptions import (
    AlreadyResolved,
    DuplicateId,
    NotFound,
    PartialResolution,
    StoreCorrupted,
    StoreError,
)
from research_oracle.utils.helpers import utc_now

logger = logging.getLogger(__name__)

REQUESTS_FILE = "requests.jsonl"
STATE_FILE = "oracle-state.json"

RESOLUTION_FIELDS = frozenset({"resolved_at", "actual_outcome", "brier_contribution"})


class RecordStore:
    """Append-only record log plus the aggregate state document."""

    def __init__(self, records_dir: Optional[str] = None):
        """Initialize record store.

        Args:
            records_dir: Directory holding the store files. If None, uses config value.
        """
        settings = get_settings()
        self.records_dir = Path(records_dir or settings.records_dir)

        # Ensure records directory exists
        self.records_dir.mkdir(parents=True, exist_ok=True)

        self.requests_path = self.records_dir / REQUESTS_FILE
        self.state_path = self.records_dir / STATE_FILE
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        """Hold the store lock across several operations."""
        with self._lock:
            yield self

    def append(self, record: RequestRecord) -> None:
        """Append a new record and count it in the aggregate state.

        Raises:
            DuplicateId: If a record with the same request id exists
        """
        with self._lock:
            if self.get(record.request_id) is not None:
                raise DuplicateId(f"Request already exists: {record.request_id}")

            state = self.load_state()

            line = record.model_dump_json() + "\n"
            try:
                with open(self.requests_path, "a", encoding="utf-8") as f:
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise StoreError(f"Failed to append record: {e}") from e

            state.total_requests += 1
            self.save_state(state)

        logger.debug("Appended request %s", record.request_id)

    def get(self, request_id: str) -> Optional[RequestRecord]:
        """Get record by request id, or None."""
        for record in self.get_all():
            if record.request_id == request_id:
                return record
        return None

    def get_all(self) -> List[RequestRecord]:
        """Get every record in append order.

        Raises:
            StoreCorrupted: If a line of the log cannot be parsed
        """
        with self._lock:
            if not self.requests_path.exists():
                return []

            records = []
            with open(self.requests_path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(RequestRecord.model_validate_json(line))
                    except PydanticValidationError as e:
                        raise StoreCorrupted(
                            f"Invalid record on line {line_num}: {e}", line_number=line_num
                        ) from e
            return records

    def update(self, request_id: str, fields: Dict[str, Any]) -> RequestRecord:
        """Apply the resolution fields to a record.

        Args:
            request_id: Request to resolve
            fields: Exactly resolved_at, actual_outcome and brier_contribution

        Returns:
            The updated record

        Raises:
            NotFound: If the request id is unknown
            AlreadyResolved: If the record was resolved before
            PartialResolution: If the resolution fields are not supplied together
        """
        with self._lock:
            records = self.get_all()
            index = next(
                (i for i, record in enumerate(records) if record.request_id == request_id),
                None,
            )
            if index is None:
                raise NotFound(f"Request not found: {request_id}")

            if records[index].resolved_at is not None:
                raise AlreadyResolved(f"Request already resolved: {request_id}")

            if set(fields) != RESOLUTION_FIELDS or any(v is None for v in fields.values()):
                raise PartialResolution(
                    f"Resolution requires exactly {sorted(RESOLUTION_FIELDS)}, got {sorted(fields)}"
                )

            updated = RequestRecord.model_validate({**records[index].model_dump(), **fields})
            records[index] = updated
            self._rewrite(records)

        logger.debug("Updated request %s", request_id)
        return updated

    def _rewrite(self, records: List[RequestRecord]) -> None:
        """Atomically replace the log with ``records``."""
        tmp_path = self.requests_path.with_name(self.requests_path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                for record in records:
                    f.write(record.model_dump_json() + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.requests_path)
        except OSError as e:
            raise StoreError(f"Failed to rewrite record log: {e}") from e

    def load_state(self) -> OracleState:
        """Load the aggregate state, rebuilding it from the log if absent."""
        with self._lock:
            if not self.state_path.exists():
                state = OracleState.from_records(self.get_all())
                self.save_state(state)
                return state

            try:
                return OracleState.model_validate_json(self.state_path.read_text(encoding="utf-8"))
            except PydanticValidationError as e:
                raise StoreCorrupted(f"Invalid oracle state document: {e}") from e

    def save_state(self, state: OracleState) -> None:
        with self._lock:
            state.last_updated = utc_now()
            tmp_path = self.state_path.with_name(self.state_path.name + ".tmp")
            try:
                tmp_path.write_text(
                    json.dumps(state.model_dump(mode="json"), indent=2), encoding="utf-8"
                )
                os.replace(tmp_path, self.state_path)
            except OSError as e:
                raise StoreError(f"Failed to save oracle state: {e}") from e


# Singleton instance
_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    """Get or create record store singleton instance."""
    global _store
    if _store is None:
        _store = RecordStore()
    return _store
