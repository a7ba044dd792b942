"""Copy an LDIF stream while dropping selected attributes.

Every logical line is either written out exactly as it was read (all of its
physical lines, continuations and line terminators included) or dropped as a
whole.  A line read without a terminator is written with ``\n``.  Only attribute
lines inside an entry whose lowercased name is in the removal set are dropped;
``dn:`` lines, blank separators, comments, malformed lines and anything outside
an entry pass through untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Set, TextIO

from .ldif_parser import LineKind, LogicalLine

logger = logging.getLogger("ldifutil.filter")

__all__ = ["FilterStats", "parse_attribute_list", "filter_attributes"]


@dataclass(slots=True)
class FilterStats:
    """Number of physical lines written and dropped."""

    kept: int = 0
    dropped: int = 0


def parse_attribute_list(raw: str) -> Set[str]:
    """Turn ``"mail, userPassword"`` into ``{"mail", "userpassword"}``."""
    return {part.strip().lower() for part in raw.split(",") if part.strip()}


def filter_attributes(lines: Iterable[LogicalLine], output: TextIO, remove: AbstractSet[str]) -> FilterStats:
    """Stream ``lines`` into ``output`` leaving out attributes named in ``remove``."""
    remove = {name.lower() for name in remove}
    stats = FilterStats()
    in_entry = False

    for line in lines:
        if line.kind is LineKind.DN:
            in_entry = True
        elif line.kind is LineKind.BLANK:
            in_entry = False
        elif line.kind is LineKind.ATTRIBUTE and in_entry and line.name.lower() in remove:
            stats.dropped += len(line.raw)
            continue

        for physical in line.raw:
            output.write(physical if physical.endswith("\n") else physical + "\n")
        stats.kept += len(line.raw)

    logger.debug("Filter kept %s lines, dropped %s", stats.kept, stats.dropped)
    return stats
