"""LDIF line folding and record parsing shared by every tool.

Two stages:

* :func:`fold_lines` turns physical lines into tagged :class:`LogicalLine`
  objects, re-joining folded continuation lines (those starting with a single
  space) onto the attribute they continue.
* :func:`parse_records` runs a small two-state machine over the logical lines
  and yields sealed :class:`Record` objects in file order.

Continuation handling
~~~~~~~~~~~~~~~~~~~~~
Historically the extraction and directory comparison tools only joined a
continuation line onto an attribute whose value was *empty* on its first line
(``description:`` followed by indented lines), while the file comparison tool
joined every continuation.  Both rules are available as *fold policies*:

``empty-first``
    continuation joins only an attribute that started with an empty value;
    any other continuation is reported as :attr:`LineKind.MALFORMED`.
``always``
    continuation joins whatever attribute line precedes it (RFC 2849).

Joined continuations are separated by ``\\n`` and stripped of surrounding
whitespace.  Values are plain text: ``::`` and ``:<`` are not decoded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

from .core.constants import FOLD_ALWAYS, FOLD_EMPTY_FIRST, FOLD_POLICIES

logger = logging.getLogger("ldifutil.parser")

__all__ = [
    "LineKind",
    "LogicalLine",
    "Record",
    "fold_lines",
    "parse_records",
    "read_records",
    "index_records",
]


class LineKind(str, Enum):
    DN = "dn"
    ATTRIBUTE = "attribute"
    BLANK = "blank"
    COMMENT = "comment"
    MALFORMED = "malformed"


@dataclass(slots=True)
class LogicalLine:
    """One unfolded LDIF line plus the physical lines it was built from.

    ``raw`` holds the physical lines exactly as read, line terminators included.
    """

    kind: LineKind
    name: str | None = None
    value: str | None = None
    raw: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Record:
    """A sealed LDIF entry.

    ``attributes`` maps lowercased attribute names to value tuples kept in
    input order, duplicates included.  Equality ignores attribute order but not
    value order.
    """

    dn: str
    attributes: Mapping[str, Tuple[str, ...]]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def values(self, name: str) -> List[str]:
        return list(self.attributes.get(name.lower(), ()))

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.attributes


class _RecordBuilder:
    """Accumulates attribute values for the record currently being scanned."""

    def __init__(self, dn: str):
        self.dn = dn
        self._attributes: Dict[str, List[str]] = {}

    def add(self, name: str, value: str) -> None:
        self._attributes.setdefault(name.lower(), []).append(value)

    def seal(self) -> Record | None:
        # an entry without attributes is dropped, never emitted
        if not self._attributes:
            logger.debug("Discarding entry without attributes: %s", self.dn)
            return None
        return Record(
            dn=self.dn,
            attributes={k: tuple(v) for k, v in self._attributes.items()},
        )


# Line folding ----------------------------------------------------------------


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _is_dn_line(line: str) -> bool:
    return line[:3].lower() == "dn:"


def fold_lines(
    lines: Iterable[str],
    fold_policy: str = FOLD_EMPTY_FIRST,
    dn_suffix: str | None = None,
) -> Iterator[LogicalLine]:
    """Yield logical lines from physical ``lines``.

    When ``dn_suffix`` is given, a DN that does not end with it is assumed to
    have been wrapped: exactly one following physical line is consumed and
    appended (stripped) to the DN.
    """
    if fold_policy not in FOLD_POLICIES:
        raise ValueError(f"Unknown fold policy: {fold_policy!r}")

    suffix = dn_suffix.lower() if dn_suffix else None
    pending: LogicalLine | None = None
    can_continue = False

    source = iter(lines)
    for physical in source:
        line = _strip_eol(physical)

        if line.startswith(" "):
            if pending is not None and can_continue:
                pending.value = f"{pending.value}\n{line.strip()}"
                pending.raw.append(physical)
                continue
            if pending is not None:
                yield pending
                pending = None
            can_continue = False
            yield LogicalLine(LineKind.MALFORMED, raw=[physical])
            continue

        if pending is not None:
            yield pending
            pending = None
        can_continue = False

        if not line:
            yield LogicalLine(LineKind.BLANK, raw=[physical])
        elif line.startswith("#"):
            yield LogicalLine(LineKind.COMMENT, raw=[physical])
        elif _is_dn_line(line):
            dn = line[3:].strip()
            raw = [physical]
            if suffix and not dn.lower().endswith(suffix):
                wrapped = next(source, None)
                if wrapped is not None:
                    raw.append(wrapped)
                    dn += _strip_eol(wrapped).strip()
            yield LogicalLine(LineKind.DN, name="dn", value=dn, raw=raw)
        else:
            name, sep, value = line.partition(":")
            name = name.strip()
            if not sep or not name:
                yield LogicalLine(LineKind.MALFORMED, raw=[physical])
                continue
            pending = LogicalLine(LineKind.ATTRIBUTE, name=name, value=value.strip(), raw=[physical])
            can_continue = fold_policy == FOLD_ALWAYS or not pending.value

    if pending is not None:
        yield pending


# Record parsing --------------------------------------------------------------


def parse_records(lines: Iterable[LogicalLine]) -> Iterator[Record]:
    """Yield records from logical lines in file order."""
    current: _RecordBuilder | None = None

    for line in lines:
        if line.kind is LineKind.DN:
            if current is not None:
                record = current.seal()
                if record is not None:
                    yield record
            current = _RecordBuilder(line.value or "")
        elif line.kind is LineKind.BLANK:
            if current is not None:
                record = current.seal()
                if record is not None:
                    yield record
                current = None
        elif line.kind is LineKind.ATTRIBUTE and current is not None:
            current.add(line.name, line.value)
        # comments, malformed lines and attributes outside an entry are ignored

    if current is not None:
        record = current.seal()
        if record is not None:
            yield record


def read_records(
    lines: Iterable[str],
    fold_policy: str = FOLD_EMPTY_FIRST,
    dn_suffix: str | None = None,
) -> Iterator[Record]:
    """Shortcut for ``parse_records(fold_lines(...))``."""
    return parse_records(fold_lines(lines, fold_policy=fold_policy, dn_suffix=dn_suffix))


def index_records(records: Iterable[Record]) -> Dict[str, Record]:
    """Map DN -> record.  A repeated DN replaces the earlier entry."""
    index: Dict[str, Record] = {}
    for record in records:
        if record.dn in index:
            logger.warning("Duplicate entry for %s, keeping the last one", record.dn)
        index[record.dn] = record
    return index
