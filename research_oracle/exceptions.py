"""Exceptions for research oracle operations."""

from typing import Optional


class OracleError(Exception):
    """Base exception for research oracle errors."""

    pass


class ValidationError(OracleError):
    """Request fields are malformed."""

    pass


class AnalystError(OracleError):
    """An analyst produced no usable result."""

    pass


class MalformedAnalystOutput(AnalystError):
    """No parseable JSON object in the analyst response."""

    pass


class OutOfRangeEstimate(AnalystError):
    """Estimate missing, not a number, or outside [0, 1]."""

    pass


class MissingReasoning(AnalystError):
    """Reasoning missing or empty."""

    pass


class InvalidConfidence(AnalystError):
    """Confidence is not one of LOW, MEDIUM, HIGH."""

    pass


class AnalystFailed(AnalystError):
    """A single analyst role failed, aborting the whole estimate."""

    def __init__(self, role, cause: BaseException):
        self.role = role
        self.cause = cause
        role_name = getattr(role, "value", role)
        super().__init__(f"{role_name} analyst failed: {cause}")


class IncompleteAnalystSet(OracleError):
    """Combiner did not receive exactly the required analyst roles."""

    pass


class StoreError(OracleError):
    """Base exception for record store errors."""

    pass


class DuplicateId(StoreError):
    """A record with this request id already exists."""

    pass


class NotFound(StoreError):
    """No record with this request id."""

    pass


class AlreadyResolved(StoreError):
    """The record has already been resolved."""

    pass


class PartialResolution(StoreError):
    """Resolution fields were not supplied together."""

    pass


class StoreCorrupted(StoreError):
    """The record log contains an unreadable line."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class LedgerError(OracleError):
    """Base exception for ledger errors."""

    pass


class LedgerRpcError(LedgerError):
    """Ledger RPC request failed."""

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.data = data


class AccountAlreadyInUse(LedgerError):
    """The account being created already exists on the ledger."""

    pass
