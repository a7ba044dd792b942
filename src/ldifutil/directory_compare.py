"""Three-way comparison of LDIF attribute values with a live directory.

For every record carrying the target attribute one lookup is issued.  Each
LDIF value is checked for an equal directory value (containment, order is
ignored because directories do not guarantee it), and directory values absent
from the LDIF side are reported separately.  A failed lookup is reported for
that DN only; the scan carries on with the next record.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Protocol, TextIO

from .errors import DirectoryError
from .ldif_parser import Record

logger = logging.getLogger("ldifutil.compare")

__all__ = [
    "LookupClient",
    "CompareStatus",
    "DirectoryComparison",
    "compare_values",
    "compare_with_directory",
    "write_comparison",
]


class LookupClient(Protocol):
    def lookup(self, dn: str, attribute: str) -> Optional[List[str]]: ...


class CompareStatus(str, Enum):
    COMPARED = "compared"
    ENTRY_NOT_FOUND = "entry-not-found"
    ATTRIBUTE_NOT_FOUND = "attribute-not-found"
    LOOKUP_FAILED = "lookup-failed"


@dataclass(slots=True)
class DirectoryComparison:
    """Outcome of comparing one record against the directory."""

    dn: str
    ldif_values: List[str]
    status: CompareStatus
    matched: List[str] = field(default_factory=list)
    ldif_only: List[str] = field(default_factory=list)
    directory_only: List[str] = field(default_factory=list)
    error: str | None = None

    @property
    def in_sync(self) -> bool:
        return self.status is CompareStatus.COMPARED and not self.ldif_only and not self.directory_only


def compare_values(dn: str, ldif_values: List[str], directory_values: List[str]) -> DirectoryComparison:
    """Split values into matched / LDIF-only / directory-only buckets."""
    directory_set = set(directory_values)
    ldif_set = set(ldif_values)
    result = DirectoryComparison(dn=dn, ldif_values=list(ldif_values), status=CompareStatus.COMPARED)
    for value in ldif_values:
        if value in directory_set:
            result.matched.append(value)
        else:
            result.ldif_only.append(value)
    result.directory_only = [v for v in directory_values if v not in ldif_set]
    return result


def compare_with_directory(
    records: Iterable[Record],
    attribute: str,
    client: LookupClient,
) -> Iterator[DirectoryComparison]:
    """Yield one :class:`DirectoryComparison` per record holding ``attribute``."""
    name = attribute.lower()
    for record in records:
        ldif_values = record.values(name)
        if not ldif_values:
            continue

        try:
            directory_values = client.lookup(record.dn, name)
        except DirectoryError as exc:
            logger.warning("Lookup of %s failed: %s", record.dn, exc)
            yield DirectoryComparison(
                dn=record.dn,
                ldif_values=ldif_values,
                status=CompareStatus.LOOKUP_FAILED,
                error=str(exc),
            )
            continue

        if directory_values is None:
            yield DirectoryComparison(dn=record.dn, ldif_values=ldif_values, status=CompareStatus.ENTRY_NOT_FOUND)
        elif not directory_values:
            yield DirectoryComparison(
                dn=record.dn, ldif_values=ldif_values, status=CompareStatus.ATTRIBUTE_NOT_FOUND
            )
        else:
            yield compare_values(record.dn, ldif_values, directory_values)


def write_comparison(results: Iterable[DirectoryComparison], output: TextIO) -> int:
    """Write the human-readable report; return the number of entries written."""
    count = 0
    for result in results:
        output.write(f"{result.dn}:\n")
        if result.status is CompareStatus.COMPARED:
            matched = set(result.matched)
            for value in result.ldif_values:
                answer = "Yes" if value in matched else "No"
                output.write(f"  - LDIF: {value} - Match in directory: {answer}\n")
            for value in result.directory_only:
                output.write(f"  - Directory only: {value}\n")
        elif result.status is CompareStatus.ATTRIBUTE_NOT_FOUND:
            output.write("  - Attribute not found in directory.\n")
        elif result.status is CompareStatus.ENTRY_NOT_FOUND:
            output.write("  - Entry not found in directory.\n")
        else:
            output.write(f"  - Lookup failed: {result.error}\n")
        count += 1
    return count
