"""Main application class for the LDIF tools.

The :class:`Application` wires configuration, file handling and the directory
client to the pure parsing / diff / filter functions.  Collaborators can be
overridden for testing, and every tool writes to an output stream supplied by
the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, TextIO

from ..attribute_filter import FilterStats, filter_attributes, parse_attribute_list
from ..config import Config
from .constants import FOLD_ALWAYS, FOLD_EMPTY_FIRST
from ..differ import diff_attribute, diff_records, write_dns
from ..directory_compare import LookupClient, compare_with_directory, write_comparison
from ..errors import LdifFileError
from ..extractor import extract_attribute, write_extraction
from ..ldap_client import DirectoryLookupClient
from ..ldif_parser import Record, fold_lines, index_records, parse_records

# Continuation rule each tool used historically
EXTRACT_FOLD_POLICY = FOLD_EMPTY_FIRST
DIFF_FOLD_POLICY = FOLD_ALWAYS
DIRECTORY_FOLD_POLICY = FOLD_EMPTY_FIRST
STRIP_FOLD_POLICY = FOLD_EMPTY_FIRST


@dataclass
class Application:
    """Runs one tool invocation.

    Example:
        app = Application(config=Config())
        app.extract("people.ldif", "mail", sys.stdout)
    """
    config: Config

    def __post_init__(self):
        self.logger = logging.getLogger(f"{__name__}.Application")

    # File helpers -----------------------------------------------------------

    def _read_lines(self, path: str) -> List[str]:
        try:
            with open(path, "r", encoding=self.config.encoding, newline="") as fh:
                return fh.readlines()
        except (OSError, UnicodeError) as exc:
            raise LdifFileError(path, exc) from exc

    def load_records(self, path: str, tool_policy: str, dn_suffix: str | None = None) -> List[Record]:
        """Parse ``path`` completely so read errors never leave partial output."""
        fold_policy = self.config.fold_policy_for(tool_policy)
        lines = self._read_lines(path)
        records = list(parse_records(fold_lines(lines, fold_policy=fold_policy, dn_suffix=dn_suffix)))
        self.logger.debug("Parsed %s entries from %s (fold policy %s)", len(records), path, fold_policy)
        return records

    # Tools ------------------------------------------------------------------

    def extract(self, path: str, attribute: str, output: TextIO) -> int:
        records = self.load_records(path, EXTRACT_FOLD_POLICY)
        return write_extraction(extract_attribute(records, attribute), output)

    def diff(self, left_path: str, right_path: str, output: TextIO, attribute: str | None = None) -> List[str]:
        left = index_records(self.load_records(left_path, DIFF_FOLD_POLICY))
        right = index_records(self.load_records(right_path, DIFF_FOLD_POLICY))

        if attribute is None:
            changed = diff_records(left, right)
        else:
            changed = diff_attribute(left, right, attribute)
        write_dns(changed, output)
        self.logger.debug("%s entries differ between %s and %s", len(changed), left_path, right_path)
        return changed

    def directory_diff(
        self,
        path: str,
        attribute: str,
        url: str,
        base_dn: str,
        bind_dn: str,
        password: str,
        output: TextIO,
        client_override: Optional[LookupClient] = None,
    ) -> int:
        records = self.load_records(path, DIRECTORY_FOLD_POLICY, dn_suffix=base_dn)

        if client_override is not None:
            return write_comparison(compare_with_directory(records, attribute, client_override), output)

        client = DirectoryLookupClient(
            url,
            bind_dn,
            password,
            insecure_skip_verify=url.lower().startswith("ldaps://"),
            connect_timeout=self.config.connect_timeout,
        )
        with client:
            return write_comparison(compare_with_directory(records, attribute, client), output)

    def strip(
        self,
        input_path: str,
        output_path: str,
        attributes: str,
    ) -> FilterStats:
        remove = parse_attribute_list(attributes)
        fold_policy = self.config.fold_policy_for(STRIP_FOLD_POLICY)
        lines = self._read_lines(input_path)
        try:
            with open(output_path, "w", encoding=self.config.encoding, newline="\n") as out:
                stats = filter_attributes(fold_lines(lines, fold_policy=fold_policy), out, remove)
        except OSError as exc:
            raise LdifFileError(output_path, exc) from exc
        self.logger.info(
            "Wrote %s (%s lines kept, %s dropped)", output_path, stats.kept, stats.dropped
        )
        return stats
