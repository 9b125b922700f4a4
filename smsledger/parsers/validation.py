"""Shared validation utilities for message parsers."""

import logging
import re

# Configure logging for parsers
logger = logging.getLogger("smsledger.parsers")


def clean_amount_string(amount_str: str) -> str:
    """
    Clean an amount string for parsing.

    Args:
        amount_str: Raw amount capture, e.g. "1,23,456.50" or "Rs. 500"

    Returns:
        Cleaned amount string ready for float conversion
    """
    if not amount_str:
        return ""

    # Remove currency markers and whitespace
    cleaned = re.sub(r"(?i)rs\.?|inr|₹", "", amount_str)
    cleaned = cleaned.replace(" ", "").strip()

    # Remove thousand separators (both western and lakh grouping)
    return cleaned.replace(",", "")


def validate_amount(amount: float, max_val: float = 100_000_000) -> bool:
    """
    Validate that an extracted amount is a usable transaction amount.

    Args:
        amount: The amount to validate
        max_val: Maximum allowed value

    Returns:
        True if valid, False otherwise
    """
    if amount is None:
        return False

    # Check for NaN or infinity
    if amount != amount or abs(amount) == float("inf"):
        return False

    return 0 < amount <= max_val


def parse_amount_safe(amount_str: str) -> tuple[float | None, bool]:
    """
    Safely parse an amount string.

    A capture that does not parse is a miss, not an error: callers move on to
    their next candidate pattern.

    Args:
        amount_str: Raw amount string

    Returns:
        Tuple of (parsed amount or None, success flag)
    """
    try:
        cleaned = clean_amount_string(amount_str)
        if not cleaned:
            return None, False

        amount = float(cleaned)

        if not validate_amount(amount):
            return None, False

        return round(amount, 2), True
    except (ValueError, TypeError):
        logger.debug(f"Unparsable amount capture: {amount_str!r}")
        return None, False


def normalize_message(message: str) -> str:
    """Collapse runs of whitespace (including newlines) into single spaces."""
    if not message:
        return ""
    return " ".join(message.split())


def is_blank(message: str | None) -> bool:
    return message is None or not message.strip()
