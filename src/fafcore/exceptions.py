"""
fafcore Exception Hierarchy

The scoring core never raises: malformed documents become diagnostics and
unknown project types fall back to ``generic``.  These exceptions belong to
the outer surfaces (configuration, document loading, CLI, MCP) so that
callers can handle those failures precisely without parsing messages.

Usage::

    from fafcore.exceptions import FafError, DocumentLoadError

    try:
        document = load_document("project.faf")
    except DocumentLoadError as exc:
        print(f"Cannot read context: {exc}")
"""


class FafError(Exception):
    """Base exception for all fafcore errors."""


class ConfigError(FafError, ValueError):
    """Configuration is invalid (e.g. an out-of-range checksum length).

    Inherits from ``ValueError`` so callers that validate settings with
    plain ``except ValueError`` keep working.
    """


class DocumentLoadError(FafError, OSError):
    """A context document could not be read or parsed from disk.

    Inherits from ``OSError`` for intuitive handling next to file errors.
    """
