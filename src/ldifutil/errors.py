"""Exception hierarchy used by the command line tools.

Malformed LDIF lines are *not* errors: the parser ignores them and the
attribute filter passes them through unchanged.
"""
from __future__ import annotations


class LdifUtilError(Exception):
    """Base class for all errors reported to the user."""


class UsageError(LdifUtilError):
    """Wrong command line arguments."""


class LdifFileError(LdifUtilError):
    """An input file could not be read or an output file could not be written."""

    def __init__(self, path: str, cause: OSError | UnicodeError):
        self.path = path
        self.cause = cause
        reason = getattr(cause, "strerror", None) or str(cause)
        super().__init__(f"{path}: {reason}")


class DirectoryError(LdifUtilError):
    """Directory transport, bind or search failure."""


class DirectoryTimeoutError(DirectoryError):
    """The directory connection was not established before the deadline."""
