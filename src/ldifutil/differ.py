"""Compare two LDIF record collections by distinguished name.

This module is *pure* (no I/O except logging) so it can be driven with
in-memory record maps in tests.

Two modes are offered:

* :func:`diff_records` reports a DN when the entry exists on one side only or
  when the attribute maps differ (same names, equal value sequences).
* :func:`diff_attribute` reports a DN when the given attribute is missing on
  either side or its value sequences differ.

Value comparison is order-sensitive in both modes.  Only DNs are reported,
never the attribute-level detail.  Results are sorted so reports are stable.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Set, TextIO

from .ldif_parser import Record

logger = logging.getLogger("ldifutil.differ")

__all__ = ["records_equal", "diff_records", "diff_attribute", "write_dns"]


def records_equal(left: Record, right: Record) -> bool:
    """Return ``True`` when both records carry identical attribute maps."""
    if left.attributes.keys() != right.attributes.keys():
        return False
    return all(left.attributes[name] == right.attributes[name] for name in left.attributes)


def _all_dns(left: Mapping[str, Record], right: Mapping[str, Record]) -> Set[str]:
    return set(left) | set(right)


def diff_records(left: Mapping[str, Record], right: Mapping[str, Record]) -> List[str]:
    """Return DNs whose entries differ or are present in only one collection."""
    changed: List[str] = []
    for dn in sorted(_all_dns(left, right)):
        a = left.get(dn)
        b = right.get(dn)
        if a is None or b is None or not records_equal(a, b):
            changed.append(dn)
    logger.debug("Full record diff: %s of %s entries differ", len(changed), len(_all_dns(left, right)))
    return changed


def diff_attribute(left: Mapping[str, Record], right: Mapping[str, Record], attribute: str) -> List[str]:
    """Return DNs where ``attribute`` is missing on either side or differs."""
    name = attribute.lower()
    changed: List[str] = []
    for dn in sorted(_all_dns(left, right)):
        a = left.get(dn)
        b = right.get(dn)
        values_a = a.attributes.get(name) if a is not None else None
        values_b = b.attributes.get(name) if b is not None else None
        if values_a is None or values_b is None or values_a != values_b:
            changed.append(dn)
    logger.debug("Attribute diff on %s: %s entries differ", name, len(changed))
    return changed


def write_dns(dns: Iterable[str], output: TextIO) -> int:
    count = 0
    for dn in dns:
        output.write(f"{dn}\n")
        count += 1
    return count
