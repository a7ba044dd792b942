"""Central configuration dataclass loaded from environment variables.

Everything positional (file names, attribute, directory URL and credentials)
comes from the command line; this object only carries the knobs that are the
same for every invocation of a tool.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from .core.constants import (
    YES_VALUES,
    FOLD_POLICIES,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ENCODING,
)


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val in YES_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_fold_policy() -> str | None:
    raw = os.getenv("LDIFUTIL_FOLD_POLICY", "").strip().lower()
    return raw or None


@dataclass(slots=True)
class Config:
    """Runtime configuration derived from environment variables."""

    debug: bool = field(default_factory=lambda: _env_bool("LDIFUTIL_DEBUG", False))
    encoding: str = field(default_factory=lambda: os.getenv("LDIFUTIL_ENCODING", DEFAULT_ENCODING))

    # Directory ---------------------------------------------------------
    connect_timeout: float = field(
        default_factory=lambda: _env_float("LDAP_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)
    )

    # Parsing -----------------------------------------------------------
    # ``None`` keeps each tool's own default continuation rule.
    fold_policy: str | None = field(default_factory=_env_fold_policy)

    def __post_init__(self) -> None:
        if self.fold_policy is not None and self.fold_policy not in FOLD_POLICIES:
            raise ValueError(
                f"Unknown fold policy {self.fold_policy!r}, expected one of {', '.join(FOLD_POLICIES)}"
            )
        if self.connect_timeout <= 0:
            raise ValueError("LDAP_CONNECT_TIMEOUT must be positive")

    def fold_policy_for(self, tool_default: str) -> str:
        """Return the configured fold policy, falling back to the tool's default."""
        return self.fold_policy or tool_default
