"""Parse LDIF dumps and compare them against each other or a live directory."""

__version__ = "1.0.0"
