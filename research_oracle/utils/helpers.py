"""Helper utilities for the research oracle."""

import uuid
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_request_id() -> str:
    """Generate a new unique request identifier."""
    return str(uuid.uuid4())


def format_percentage(value: Optional[float], decimals: int = 1) -> str:
    """Format percentage for display.

    Args:
        value: Probability value (0-1)
        decimals: Number of decimal places

    Returns:
        Formatted percentage string
    """
    if value is None:
        return "N/A"
    return f"{value * 100:.{decimals}f}%"


def parse_outcome(outcome: str) -> bool:
    """Validate and normalize a yes/no outcome string.

    Args:
        outcome: Outcome string ("yes"/"no", "true"/"false")

    Returns:
        True for a YES outcome, False for NO

    Raises:
        ValueError: If outcome is invalid
    """
    outcome_lower = outcome.strip().lower()
    if outcome_lower in ("yes", "true", "1"):
        return True
    if outcome_lower in ("no", "false", "0"):
        return False
    raise ValueError(f"Invalid outcome: {outcome}. Must be 'yes' or 'no'.")
