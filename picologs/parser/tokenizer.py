"""
Line tokenizer for Star Citizen Game.log lines.
"""

from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass

from .patterns import compile_pattern, safe_match, safe_search, DEFAULT_TIMEOUT


@dataclass(frozen=True)
class RawLogLine:
    """A line as delivered by the file watcher."""

    text: str
    arrival_time: datetime


@dataclass
class ParsedLine:
    """Represents a log line split into timestamp, tag and body."""

    timestamp: datetime
    body: str
    tag: Optional[str]
    raw_line: str
    has_timestamp: bool


class LineTokenizer:
    """
    Splits Game.log lines into their leading timestamp and message body.

    Lines look like ``<2024.06.07-12:34:56:789> [Notice] <Actor Death> ...``.
    The tokenizer holds no state between lines.
    """

    # "<timestamp> rest"
    LINE_PATTERN = compile_pattern(r"^\s*<(?P<ts>[^<>]{8,40})>\s?(?P<body>.*)$")

    # 2024.06.07-12:34:56:789, 2024.06.07-12:34:56.789, 2024-06-07T12:34:56.789Z
    TIMESTAMP_PATTERN = compile_pattern(
        r"^(?P<year>\d{4})[.\-](?P<month>\d{2})[.\-](?P<day>\d{2})[\-T]"
        r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:[:.](?P<ms>\d{1,6}))?Z?$"
    )

    # First angle-bracket tag in the body, e.g. "<Actor Death>"
    TAG_PATTERN = compile_pattern(r"<(?P<tag>[A-Za-z][A-Za-z_ ]{1,60})>")

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def parse_line(self, line: RawLogLine) -> Optional[ParsedLine]:
        """
        Split a raw line into its components.

        Args:
            line: Raw line from the log file

        Returns:
            ParsedLine, or None for empty lines
        """
        text = line.text.rstrip("\r\n")
        if not text.strip():
            return None

        timestamp = None
        body = text

        match = safe_match(self.LINE_PATTERN, text, self.timeout)
        if match:
            timestamp = self.parse_timestamp(match.group("ts"))
            if timestamp is not None:
                body = match.group("body")

        has_timestamp = timestamp is not None
        if timestamp is None:
            timestamp = as_utc(line.arrival_time)

        tag_match = safe_search(self.TAG_PATTERN, body, self.timeout)
        tag = tag_match.group("tag").strip() if tag_match else None

        return ParsedLine(
            timestamp=timestamp,
            body=body,
            tag=tag,
            raw_line=text,
            has_timestamp=has_timestamp,
        )

    def parse_timestamp(self, raw: str) -> Optional[datetime]:
        """
        Parse a Game.log timestamp into an aware UTC datetime.

        Milliseconds are right-padded, so ``:1`` reads as 100ms.
        """
        match = safe_match(self.TIMESTAMP_PATTERN, raw.strip(), self.timeout)
        if not match:
            return None

        ms = (match.group("ms") or "0")[:3].ljust(3, "0")
        try:
            return datetime(
                int(match.group("year")),
                int(match.group("month")),
                int(match.group("day")),
                int(match.group("hour")),
                int(match.group("minute")),
                int(match.group("second")),
                int(ms) * 1000,
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None


def as_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
