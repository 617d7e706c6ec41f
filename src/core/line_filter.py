"""Relevance filter for raw cluster lines (core domain).

Runs on the raw text before any parsing so irrelevant traffic never pays the
parser cost. A relevant line may still fail to parse; it is forwarded as-is.
"""

from __future__ import annotations

_SPOT_PREFIX = "dx de"
_FINNISH_REPORTER_PREFIXES = ("dx de oh", "dx de og")
# Position right after "dx de oh" / "dx de og".
_CALL_AREA_INDEX = 8
_WWFF_FINLAND = "ohff-"
_POTA_FINLAND = "oh-"


def is_relevant(line: str) -> bool:
    """Return True for spots reported from, or referencing, Finland."""

    lowered = line.lower()

    if not lowered.startswith(_SPOT_PREFIX):
        return False

    # OH/OG reporters, but only with a call area digit (skips e.g. "OHNO").
    if lowered.startswith(_FINNISH_REPORTER_PREFIXES):
        call_area = lowered[_CALL_AREA_INDEX : _CALL_AREA_INDEX + 1]
        if call_area and call_area in "0123456789":
            return True

    if _WWFF_FINLAND in lowered:
        return True

    if _POTA_FINLAND in lowered:
        return True

    return False
