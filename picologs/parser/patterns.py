"""
Time-bounded regular expression helpers.

Every pattern attempt made while classifying a log line goes through these
helpers. A match that runs past its timeout is reported as no match.
"""

import logging
from typing import Optional

import regex

logger = logging.getLogger(__name__)

# Seconds allowed for a single pattern attempt
DEFAULT_TIMEOUT = 0.1


def compile_pattern(pattern: str, flags: int = 0) -> "regex.Pattern":
    """Compile a pattern with the ``regex`` engine, which supports per-call timeouts."""
    return regex.compile(pattern, flags)


def safe_search(
    pattern: "regex.Pattern", text: str, timeout: float = DEFAULT_TIMEOUT
) -> Optional["regex.Match"]:
    """
    Search text with timeout protection.

    Args:
        pattern: Compiled pattern
        text: Text to search
        timeout: Seconds before the attempt is abandoned

    Returns:
        Match object, or None on no match or timeout
    """
    try:
        return pattern.search(text, timeout=timeout)
    except TimeoutError:
        logger.warning(
            f"Pattern timeout exceeded ({timeout * 1000:.0f}ms) for {pattern.pattern[:40]!r}"
        )
        return None


def safe_match(
    pattern: "regex.Pattern", text: str, timeout: float = DEFAULT_TIMEOUT
) -> Optional["regex.Match"]:
    """Anchored variant of :func:`safe_search`."""
    try:
        return pattern.match(text, timeout=timeout)
    except TimeoutError:
        logger.warning(
            f"Pattern timeout exceeded ({timeout * 1000:.0f}ms) for {pattern.pattern[:40]!r}"
        )
        return None

