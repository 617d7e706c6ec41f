"""Core domain models.

These types are shared across the core and adapters to avoid tight coupling
to any integration-specific representation of a DX spot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

# Activity and source codes used by the CQGMA cluster:
#
#   x01 Flora & Fauna        d DX Cluster     s SOTAwatch RSS
#   x02 Islands              f smartWWFF      t RRT
#   x03 Castles              g GMAwatch       u UDXlog
#   x04 SOTA                 m smartGMA       v VK Spots
#   x05 GMA                  r RBN            w WWFFwatch
#   x06 Lighthouses                           x SMS
#   x07 RDA
#   x08 AGCW


class Activity(Enum):
    """Awards programme an activator is operating for."""

    WWFF = "01"
    IOTA = "02"
    COTA = "03"
    SOTA = "04"
    GMA = "05"
    LIGHTHOUSES = "06"
    RDA = "07"
    AGCW = "08"

    @classmethod
    def from_code(cls, code: str) -> Optional["Activity"]:
        try:
            return cls(code)
        except ValueError:
            return None


class Source(Enum):
    """Service the cluster received the spot from."""

    DX_CLUSTER = "d"
    SMART_WWFF = "f"
    GMA_WATCH = "g"
    SMART_GMA = "m"
    RBN = "r"
    SOTAWATCH_RSS = "s"
    RRT = "t"
    UDX_LOG = "u"
    VK_SPOTS = "v"
    WWFF_WATCH = "w"
    SMS = "x"

    @classmethod
    def from_code(cls, code: str) -> Optional["Source"]:
        try:
            return cls(code)
        except ValueError:
            return None


CqgmaIdentifier = Tuple[Activity, Source]


@dataclass(frozen=True)
class DxEntry:
    """One decoded ``DX de`` spot line."""

    reporter: str
    frequency: float
    dx: str
    cqgma_identifier: Optional[CqgmaIdentifier]
    info: str
    timestamp: str
