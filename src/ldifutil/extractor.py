"""Project one attribute out of a stream of records."""
from __future__ import annotations

from typing import Iterable, Iterator, List, TextIO, Tuple

from .ldif_parser import Record

__all__ = ["extract_attribute", "write_extraction"]


def extract_attribute(records: Iterable[Record], attribute: str) -> Iterator[Tuple[str, List[str]]]:
    """Yield ``(dn, values)`` for every record holding ``attribute``.

    The attribute name is matched case-insensitively; records without a value
    for it are skipped.
    """
    name = attribute.lower()
    for record in records:
        values = record.values(name)
        if values:
            yield record.dn, values


def write_extraction(matches: Iterable[Tuple[str, List[str]]], output: TextIO) -> int:
    """Write ``dn:`` headers followed by indented values; return entries written."""
    count = 0
    for dn, values in matches:
        output.write(f"{dn}:\n")
        for value in values:
            output.write(f"  - {value}\n")
        count += 1
    return count
