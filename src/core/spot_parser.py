"""DX spider spot grammar (core domain).

Spot lines have a fixed shape but irregular spacing::

    DX de OH8HUB:    14310.0  AD6VT        x04s W6/ND-101                 1959Z

Fields are scanned left to right without backtracking. The info field takes
at most 26 characters, which on well-formed lines ends exactly where the
timestamp column starts; trailing content such as a grid locator is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from core.models import Activity, DxEntry, Source

SPOT_PREFIX = "DX de"
INFO_MAX_CHARS = 26
TIMESTAMP_DIGITS = 4
_ASCII_DIGITS = "0123456789"


@dataclass(frozen=True)
class ParseError:
    """Rejection returned for any line that does not match the grammar."""

    line: str
    reason: str


ParseResult = Union[DxEntry, ParseError]


class _Scanner:
    """Cursor over a single line."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def take_while(self, predicate: Callable[[str], bool], limit: Optional[int] = None) -> str:
        start = self.pos
        end = len(self.text) if limit is None else min(len(self.text), start + limit)
        while self.pos < end and predicate(self.text[self.pos]):
            self.pos += 1
        return self.text[start : self.pos]

    def accept(self, literal: str) -> bool:
        if self.text.startswith(literal, self.pos):
            self.pos += len(literal)
            return True
        return False

    def peek(self, count: int) -> str:
        return self.text[self.pos : self.pos + count]


def _is_callsign_char(ch: str) -> bool:
    return ch.isascii() and ch not in (":", " ")


def _is_frequency_char(ch: str) -> bool:
    return ch in _ASCII_DIGITS or ch == "."


def _is_ascii_digit(ch: str) -> bool:
    return ch in _ASCII_DIGITS


def _tag_shape(candidate: str) -> bool:
    # x, two digits, one letter
    return (
        len(candidate) == 4
        and candidate[0] == "x"
        and all(_is_ascii_digit(ch) for ch in candidate[1:3])
        and candidate[3].isalpha()
    )


def parse_spot(line: str) -> ParseResult:
    """Decode one cluster line into a :class:`DxEntry`.

    Returns a :class:`ParseError` instead of raising, so callers can drop
    rejected lines without any exception handling.
    """

    scanner = _Scanner(line)

    if not scanner.accept(SPOT_PREFIX):
        return ParseError(line, "missing 'DX de' prefix")

    scanner.skip_whitespace()
    reporter = scanner.take_while(_is_callsign_char)
    scanner.skip_whitespace()
    scanner.accept(":")

    scanner.skip_whitespace()
    frequency_text = scanner.take_while(_is_frequency_char)
    if len(frequency_text) < 3:
        return ParseError(line, "frequency is too short")
    try:
        frequency = float(frequency_text)
    except ValueError:
        return ParseError(line, f"malformed frequency {frequency_text!r}")
    scanner.skip_whitespace()

    dx = scanner.take_while(_is_callsign_char)
    scanner.skip_whitespace()

    # The CQGMA tag is all-or-nothing: the shape alone commits us to it.
    cqgma_identifier = None
    tag = scanner.peek(4)
    if _tag_shape(tag):
        activity = Activity.from_code(tag[1:3])
        source = Source.from_code(tag[3])
        if activity is None or source is None:
            return ParseError(line, f"unknown CQGMA identifier {tag!r}")
        cqgma_identifier = (activity, source)
        scanner.pos += len(tag)
        scanner.skip_whitespace()

    info = scanner.take_while(str.isascii, limit=INFO_MAX_CHARS).strip()

    scanner.skip_whitespace()
    timestamp = scanner.take_while(_is_ascii_digit)
    if len(timestamp) != TIMESTAMP_DIGITS:
        return ParseError(line, "missing or malformed timestamp")
    if not scanner.accept("Z"):
        return ParseError(line, "timestamp is missing the 'Z' suffix")

    return DxEntry(
        reporter=reporter,
        frequency=frequency,
        dx=dx,
        cqgma_identifier=cqgma_identifier,
        info=info,
        timestamp=timestamp,
    )
